#!/usr/bin/env python3
import logging

import aws_cdk as cdk

from adoption import config, registry

from dotenv import load_dotenv

load_dotenv()

deployment = config.load(config.DeploymentSettings)

logging.basicConfig(
    level=deployment.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = cdk.App()
# Which stacks get synthesized is driven by ADOPTION_STACKS, e.g. "ec2,rds".
# Account/Region come from the CLI profile through CDK_DEFAULT_ACCOUNT and
# CDK_DEFAULT_REGION, or from .env. Lookups (hosted zone, imported VPC) need both.
registry.build(app, deployment)

app.synth()
