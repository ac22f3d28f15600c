import logging

import aws_cdk as cdk
from aws_cdk import (
    aws_ec2 as ec2,
    aws_elasticache as elasticache,
    aws_logs as logs,
    aws_rds as rds,
)
from constructs import Construct

from adoption.config import RdsSettings

logger = logging.getLogger(__name__)


class RdsStack(cdk.Stack):
    """Aurora PostgreSQL and Redis in isolated subnets, reachable through a bastion."""

    def __init__(
        self, scope: Construct, construct_id: str, settings: RdsSettings, **kwargs
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        subnet_configuration = [
            ec2.SubnetConfiguration(
                name="public", subnet_type=ec2.SubnetType.PUBLIC, cidr_mask=24
            ),
            ec2.SubnetConfiguration(
                name="isolated", subnet_type=ec2.SubnetType.PRIVATE_ISOLATED, cidr_mask=24
            ),
        ]
        # Egress subnets need at least one NAT gateway.
        if settings.nat_gateways > 0:
            subnet_configuration.insert(
                1,
                ec2.SubnetConfiguration(
                    name="private",
                    subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS,
                    cidr_mask=24,
                ),
            )

        self.vpc = ec2.Vpc(
            self,
            "adoption-rds-vpc",
            max_azs=2,
            nat_gateways=settings.nat_gateways,
            subnet_configuration=subnet_configuration,
        )

        sg_database = ec2.SecurityGroup(
            self,
            "adoption-db-sg",
            vpc=self.vpc,
            description="Allow PostgreSQL access",
            allow_all_outbound=True,
        )
        sg_redis = ec2.SecurityGroup(
            self,
            "adoption-redis-sg",
            vpc=self.vpc,
            description="Allow Redis access",
            allow_all_outbound=True,
        )
        sg_bastion = ec2.SecurityGroup(
            self,
            "adoption-bastion-sg",
            vpc=self.vpc,
            description="Allow SSH access to Bastion",
            allow_all_outbound=True,
        )

        sg_database.add_ingress_rule(
            sg_bastion, ec2.Port.tcp(5432), "Allow PostgreSQL access from bastion"
        )
        sg_redis.add_ingress_rule(
            sg_bastion, ec2.Port.tcp(6379), "Allow Redis access from bastion"
        )
        sg_bastion.add_ingress_rule(
            ec2.Peer.ipv4(settings.bastion_cidr),
            ec2.Port.tcp(22),
            "Allow SSH access from trusted IP",
        )
        if settings.bastion_cidr == "0.0.0.0/0":
            logger.warning("BASTION_IP is not set, SSH to the bastion is open to the world")

        self.bastion = ec2.BastionHostLinux(
            self,
            "adoption-bastion",
            vpc=self.vpc,
            subnet_selection=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PUBLIC),
            security_group=sg_bastion,
        )

        isolated_subnets = ec2.SubnetSelection(
            subnet_type=ec2.SubnetType.PRIVATE_ISOLATED
        )
        # Aurora PostgreSQL does not offer anything smaller than db.t3.medium.
        instance_type = ec2.InstanceType.of(ec2.InstanceClass.T3, ec2.InstanceSize.MEDIUM)

        self.db_cluster = rds.DatabaseCluster(
            self,
            "adoption-aurora-postgres-cluster",
            engine=rds.DatabaseClusterEngine.aurora_postgres(
                version=rds.AuroraPostgresEngineVersion.of(
                    settings.engine_version, settings.engine_major_version
                )
            ),
            credentials=rds.Credentials.from_generated_secret(settings.master_username),
            default_database_name=settings.database_name,
            writer=rds.ClusterInstance.provisioned("writer", instance_type=instance_type),
            readers=[
                rds.ClusterInstance.provisioned(
                    f"reader{index}", instance_type=instance_type
                )
                for index in range(1, settings.instance_count)
            ],
            vpc=self.vpc,
            vpc_subnets=isolated_subnets,
            security_groups=[sg_database],
            cloudwatch_logs_exports=["postgresql"],
            cloudwatch_logs_retention=logs.RetentionDays.ONE_MONTH,
            # Development database, dropped together with the stack.
            removal_policy=cdk.RemovalPolicy.DESTROY,
        )

        redis_subnet_group = elasticache.CfnSubnetGroup(
            self,
            "adoption-redis-subnet-group",
            description="Subnet group for Redis",
            subnet_ids=self.vpc.select_subnets(
                subnet_type=ec2.SubnetType.PRIVATE_ISOLATED
            ).subnet_ids,
        )

        self.redis_cluster = elasticache.CfnCacheCluster(
            self,
            "adoption-redis-cluster",
            engine="redis",
            cache_node_type=settings.redis_node_type,
            num_cache_nodes=1,
            vpc_security_group_ids=[sg_redis.security_group_id],
            cache_subnet_group_name=redis_subnet_group.ref,
        )

        cdk.CfnOutput(
            self,
            "adoption-aurora-postgres-endpoint",
            value=self.db_cluster.cluster_endpoint.hostname,
        )
        cdk.CfnOutput(
            self,
            "adoption-redis-endpoint",
            value=self.redis_cluster.attr_redis_endpoint_address,
        )
        cdk.CfnOutput(
            self,
            "adoption-bastion-public-ip",
            value=self.bastion.instance_public_ip,
        )
