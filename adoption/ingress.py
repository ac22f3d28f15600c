import logging
from typing import Iterable, NamedTuple

from aws_cdk import aws_ec2 as ec2

logger = logging.getLogger(__name__)


class IngressPort(NamedTuple):
    port: int
    label: str


WORKSTATION_PORTS = (
    IngressPort(22, "SSH"),
    IngressPort(80, "HTTP"),
    IngressPort(5432, "PostgreSQL"),
    IngressPort(3000, "Frontend"),
    IngressPort(3001, "Frontend2"),
    IngressPort(8080, "Backend"),
    IngressPort(8081, "Batch"),
    IngressPort(6379, "Redis"),
    IngressPort(8001, "RedisInsight"),
)


def allow_from_cidrs(
    security_group: ec2.SecurityGroup,
    cidrs: Iterable[str],
    ports: Iterable[IngressPort],
) -> int:
    """Open every port in ``ports`` to every CIDR in ``cidrs``.

    Returns the number of ingress rules added.
    """
    ports = tuple(ports)
    count = 0
    for cidr in cidrs:
        for entry in ports:
            security_group.add_ingress_rule(
                ec2.Peer.ipv4(cidr),
                ec2.Port.tcp(entry.port),
                f"{entry.label} Access from {cidr}",
            )
            count += 1
    logger.info(
        "Added %d ingress rules to %s", count, security_group.node.path
    )
    return count
