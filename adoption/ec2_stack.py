import logging
from typing import NamedTuple, Optional, Tuple

import aws_cdk as cdk
from aws_cdk import aws_ec2 as ec2, aws_iam as iam
from constructs import Construct

from adoption.config import ConfigurationError, Ec2Settings
from adoption.ingress import WORKSTATION_PORTS, allow_from_cidrs

logger = logging.getLogger(__name__)


class InstanceProfile(NamedTuple):
    name: str
    instance_size: ec2.InstanceSize
    root_volume_gib: Optional[int]
    bootstrap_commands: Tuple[str, ...]


DOCKER_BOOTSTRAP = (
    "yum update -y",
    # Git
    "yum install -y git",
    # Docker
    "yum install -y docker",
    "systemctl start docker",
    "systemctl enable docker",
    "chmod 666 /var/run/docker.sock",
    # docker-compose
    "mkdir -p /usr/local/lib/docker/cli-plugins",
    "VER=2.4.1",
    "curl -L https://github.com/docker/compose/releases/download/v${VER}/docker-compose-$(uname -s)-$(uname -m) -o /usr/local/lib/docker/cli-plugins/docker-compose",
    "chmod +x /usr/local/lib/docker/cli-plugins/docker-compose",
    "ln -s /usr/local/lib/docker/cli-plugins/docker-compose /usr/bin/docker-compose",
)

INSTANCE_PROFILES = {
    "adoption": InstanceProfile(
        name="adoption",
        instance_size=ec2.InstanceSize.SMALL,
        root_volume_gib=160,
        bootstrap_commands=DOCKER_BOOTSTRAP,
    ),
    "dev": InstanceProfile(
        name="dev",
        instance_size=ec2.InstanceSize.MEDIUM,
        root_volume_gib=None,
        bootstrap_commands=(),
    ),
}


def get_profile(name: str) -> InstanceProfile:
    try:
        return INSTANCE_PROFILES[name]
    except KeyError:
        raise ConfigurationError(
            "unknown EC2 profile {0!r}, expected one of: {1}".format(
                name, ", ".join(sorted(INSTANCE_PROFILES))
            )
        ) from None


class Ec2Stack(cdk.Stack):
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        settings: Ec2Settings,
        profile: Optional[InstanceProfile] = None,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        profile = profile or get_profile(settings.profile)
        logger.info("Building %s with the %s profile", construct_id, profile.name)

        vpc = ec2.Vpc(self, "adoption-vpc", nat_gateways=0)

        sg_workstation = ec2.SecurityGroup(self, "adoption-ec2-sg", vpc=vpc)
        allow_from_cidrs(sg_workstation, settings.allowed_cidrs, WORKSTATION_PORTS)

        role = iam.Role(
            self,
            "adoption-role",
            assumed_by=iam.ServicePrincipal("ec2.amazonaws.com"),
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name(
                    "AmazonSSMManagedInstanceCore"
                )
            ],
        )

        user_data = ec2.MultipartUserData()
        commands = ec2.UserData.for_linux()
        user_data.add_user_data_part(commands, ec2.MultipartBody.SHELL_SCRIPT, True)
        commands.add_commands(*profile.bootstrap_commands)

        block_devices = None
        if profile.root_volume_gib:
            block_devices = [
                ec2.BlockDevice(
                    device_name="/dev/xvda",
                    volume=ec2.BlockDeviceVolume.ebs(
                        profile.root_volume_gib,
                        delete_on_termination=True,
                        encrypted=True,
                        volume_type=ec2.EbsDeviceVolumeType.GP2,
                    ),
                )
            ]

        self.instance = ec2.Instance(
            self,
            "adoption",
            vpc=vpc,
            vpc_subnets=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PUBLIC),
            security_group=sg_workstation,
            instance_type=ec2.InstanceType.of(
                ec2.InstanceClass.T3, profile.instance_size
            ),
            machine_image=ec2.MachineImage.latest_amazon_linux2(),
            role=role,
            key_pair=ec2.KeyPair.from_key_pair_name(
                self, "adoption-key-pair", settings.key_name
            ),
            user_data=user_data,
            block_devices=block_devices,
        )

        cdk.CfnOutput(self, "adoption-ec2-output", value=self.instance.instance_public_ip)
