import logging

import aws_cdk as cdk
from aws_cdk import (
    aws_certificatemanager as acm,
    aws_ec2 as ec2,
    aws_ecs as ecs,
    aws_elasticloadbalancingv2 as elb,
    aws_iam as iam,
    aws_route53 as route53,
    aws_route53_targets as route53_targets,
)
from constructs import Construct

from adoption.certificates import NoDomainCertificateError, find_certificate_arn
from adoption.config import EcsSettings

logger = logging.getLogger(__name__)

CONTAINER_NAME = "AdoptionNextJsContainer"


class EcsStack(cdk.Stack):
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        settings: EcsSettings,
        acm_client=None,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # Public subnets only, tasks get public IPs instead of a NAT gateway.
        vpc = ec2.Vpc(
            self,
            "AdoptionVpc",
            max_azs=2,
            nat_gateways=0,
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name="PublicSubnet", subnet_type=ec2.SubnetType.PUBLIC, cidr_mask=24
                ),
            ],
        )

        self.cluster = ecs.Cluster(self, "AdoptionEcsCluster", vpc=vpc)

        # Execution role is managed outside this app.
        execution_role = iam.Role.from_role_arn(
            self, "ECSExecutionRole", settings.role_arn
        )

        task_definition = ecs.FargateTaskDefinition(
            self, "AdoptionTaskDef", execution_role=execution_role
        )

        container = task_definition.add_container(
            CONTAINER_NAME,
            image=ecs.ContainerImage.from_registry(settings.container_image),
            memory_limit_mib=512,
            cpu=256,
            logging=ecs.AwsLogDriver(stream_prefix="ecs-logs"),
        )
        container.add_port_mappings(
            ecs.PortMapping(container_port=settings.container_port)
        )

        self.service = ecs.FargateService(
            self,
            "AdoptionFargateService",
            cluster=self.cluster,
            task_definition=task_definition,
            desired_count=1,
            assign_public_ip=True,
            vpc_subnets=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PUBLIC),
        )

        self.load_balancer = elb.ApplicationLoadBalancer(
            self, "AdoptionALB", vpc=vpc, internet_facing=True
        )

        target_group = elb.ApplicationTargetGroup(
            self,
            "AdoptionTargetGroup",
            vpc=vpc,
            port=settings.container_port,
            protocol=elb.ApplicationProtocol.HTTP,
            targets=[
                self.service.load_balancer_target(
                    container_name=CONTAINER_NAME,
                    container_port=settings.container_port,
                )
            ],
            health_check=elb.HealthCheck(path="/"),
        )

        hosted_zone = route53.HostedZone.from_lookup(
            self, "AdoptionHostedZone", domain_name=settings.domain_name
        )

        certificate = self.__certificate(settings, hosted_zone, acm_client)

        listener_http = self.load_balancer.add_listener(
            "AdoptionHttpListener",
            port=80,
            default_action=elb.ListenerAction.redirect(
                protocol="HTTPS", port="443", permanent=True
            ),
        )

        listener_https = self.load_balancer.add_listener(
            "AdoptionHttpsListener",
            port=443,
            certificates=[elb.ListenerCertificate.from_certificate_manager(certificate)],
            default_action=elb.ListenerAction.fixed_response(
                200, content_type="text/plain", message_body="OK"
            ),
        )

        # Both listeners draw from one priority sequence.
        priority = 1
        for ip in settings.primary_cidrs:
            rule_suffix = ip.replace("/", "-")
            listener_http.add_action(
                f"AllowHttpIP-{rule_suffix}",
                priority=priority,
                conditions=[elb.ListenerCondition.source_ips([ip])],
                action=elb.ListenerAction.forward([target_group]),
            )
            priority += 1

            listener_https.add_action(
                f"AllowHttpsIP-{rule_suffix}",
                priority=priority,
                conditions=[elb.ListenerCondition.source_ips([ip])],
                action=elb.ListenerAction.forward([target_group]),
            )
            priority += 1

        logger.info(
            "Forwarding %s to the service for %d allowed CIDRs",
            settings.fqdn,
            len(settings.primary_cidrs),
        )

        route53.ARecord(
            self,
            "AdoptionAliasRecord",
            zone=hosted_zone,
            record_name=settings.sub_domain_name,
            target=route53.RecordTarget.from_alias(
                route53_targets.LoadBalancerTarget(self.load_balancer)
            ),
        )

    def __certificate(
        self, settings: EcsSettings, hosted_zone: route53.IHostedZone, acm_client
    ) -> acm.ICertificate:
        certificate_arn = settings.certificate_arn
        if not certificate_arn and settings.reuse_certificate:
            try:
                certificate_arn = find_certificate_arn(
                    settings.fqdn, client=acm_client, region_name=self.__lookup_region()
                )
            except NoDomainCertificateError:
                logger.info(
                    "No ACM certificate for %s, requesting a new one", settings.fqdn
                )

        if certificate_arn:
            return acm.Certificate.from_certificate_arn(
                self, "AdoptionCertificate", certificate_arn
            )

        return acm.Certificate(
            self,
            "AdoptionCertificate",
            domain_name=settings.fqdn,
            validation=acm.CertificateValidation.from_dns(hosted_zone),
        )

    def __lookup_region(self):
        # ALB certificates must live in the stack's region. Environment-agnostic
        # stacks fall back to the CLI default.
        if cdk.Token.is_unresolved(self.region):
            return None
        return self.region
