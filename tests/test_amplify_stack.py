import json
import logging

import pytest
from aws_cdk import assertions

from adoption import config
from adoption.amplify_stack import AmplifyStack


class TestAmplifyStack:
    @pytest.fixture(autouse=True)
    def synth(self, app, env, allow_list):
        stack = AmplifyStack(
            app, "AmplifyNextAppStack", config.load(config.AmplifySettings), env=env
        )
        self.template = assertions.Template.from_stack(stack)

    def test_ip_set_holds_allow_list(self):
        self.template.has_resource_properties(
            "AWS::WAFv2::IPSet",
            {
                "Addresses": ["203.0.113.10/32", "198.51.100.0/24"],
                "IPAddressVersion": "IPV4",
                "Scope": "REGIONAL",
            },
        )

    def test_web_acl_blocks_everything_else(self):
        self.template.has_resource_properties(
            "AWS::WAFv2::WebACL",
            {
                "DefaultAction": {"Block": {}},
                "Scope": "REGIONAL",
                "Rules": [
                    {
                        "Name": "AdoptionAllowSpecificIP",
                        "Priority": 1,
                        "Action": {"Allow": {}},
                        "VisibilityConfig": {"MetricName": "AdoptionAllowedIPSet"},
                    }
                ],
            },
        )

    def test_app_pulls_from_codecommit(self):
        self.template.resource_count_is("AWS::Amplify::App", 1)
        policies = json.dumps(self.template.find_resources("AWS::IAM::Policy"))
        assert "codecommit:GitPull" in policies

    def test_branch_receives_web_acl_arn(self):
        self.template.has_resource_properties(
            "AWS::Amplify::Branch",
            {
                "BranchName": "main",
                "EnvironmentVariables": [{"Name": "CLOUDFRONT_WAF_WEB_ACL_ID"}],
            },
        )

    def test_web_acl_output(self):
        assert len(self.template.find_outputs("WebAclArn")) == 1


def test_empty_allow_list_is_reported(app, env, caplog):
    with caplog.at_level(logging.WARNING, logger="adoption.amplify_stack"):
        AmplifyStack(app, "ClosedAmplifyStack", config.load(config.AmplifySettings), env=env)

    assert "blocks all traffic" in caplog.text


def test_ip_set_ignores_third_and_fourth_entries(app, env, allow_list, monkeypatch):
    monkeypatch.setenv("SG_IP3", "192.0.2.1")
    monkeypatch.setenv("SG_IP4", "192.0.2.2")
    stack = AmplifyStack(app, "AmplifyNextAppStack", config.load(config.AmplifySettings), env=env)

    ip_sets = assertions.Template.from_stack(stack).find_resources("AWS::WAFv2::IPSet")
    (ip_set,) = ip_sets.values()
    assert ip_set["Properties"]["Addresses"] == ["203.0.113.10/32", "198.51.100.0/24"]
