import logging

import aws_cdk as cdk
from aws_cdk import (
    aws_amplify as amplify,
    aws_codecommit as codecommit,
    aws_iam as iam,
    aws_wafv2 as wafv2,
)
from constructs import Construct

from adoption.config import AmplifySettings

logger = logging.getLogger(__name__)


class AmplifyStack(cdk.Stack):
    def __init__(
        self, scope: Construct, construct_id: str, settings: AmplifySettings, **kwargs
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        repository = codecommit.Repository.from_repository_name(
            self, "Adoption", settings.repository_name
        )

        amplify_role = iam.Role(
            self,
            "AdoptionAmplifyRole",
            assumed_by=iam.ServicePrincipal("amplify.amazonaws.com"),
        )
        repository.grant_pull(amplify_role)

        self.amplify_app = amplify.CfnApp(
            self,
            "AdoptionAmplify",
            name="adoption",
            repository=repository.repository_clone_url_http,
            iam_service_role=amplify_role.role_arn,
        )

        ip_set = wafv2.CfnIPSet(
            self,
            "AdoptionAllowedIPSet",
            addresses=settings.primary_cidrs,
            ip_address_version="IPV4",
            scope="REGIONAL",
        )

        # Everything is blocked unless it comes from the allow-list.
        self.web_acl = wafv2.CfnWebACL(
            self,
            "AdoptionWebACL",
            default_action=wafv2.CfnWebACL.DefaultActionProperty(block={}),
            scope="REGIONAL",
            visibility_config=wafv2.CfnWebACL.VisibilityConfigProperty(
                sampled_requests_enabled=True,
                cloud_watch_metrics_enabled=True,
                metric_name="WebACL",
            ),
            rules=[
                wafv2.CfnWebACL.RuleProperty(
                    name="AdoptionAllowSpecificIP",
                    priority=1,
                    action=wafv2.CfnWebACL.RuleActionProperty(allow={}),
                    statement=wafv2.CfnWebACL.StatementProperty(
                        ip_set_reference_statement=wafv2.CfnWebACL.IPSetReferenceStatementProperty(
                            arn=ip_set.attr_arn
                        )
                    ),
                    visibility_config=wafv2.CfnWebACL.VisibilityConfigProperty(
                        sampled_requests_enabled=True,
                        cloud_watch_metrics_enabled=True,
                        metric_name="AdoptionAllowedIPSet",
                    ),
                )
            ],
        )

        self.branch = amplify.CfnBranch(
            self,
            "AdoptionAmplifyBranch",
            app_id=self.amplify_app.attr_app_id,
            branch_name=settings.branch_name,
            environment_variables=[
                amplify.CfnBranch.EnvironmentVariableProperty(
                    name="CLOUDFRONT_WAF_WEB_ACL_ID", value=self.web_acl.attr_arn
                )
            ],
        )

        if not settings.primary_cidrs:
            logger.warning("SG_IP and SG_IP2 are not set, the web ACL blocks all traffic")

        cdk.CfnOutput(self, "WebAclArn", value=self.web_acl.attr_arn)
