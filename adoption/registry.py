"""Maps stack names accepted in ADOPTION_STACKS to the code that builds them."""
import logging
from typing import Callable, Dict, List

import aws_cdk as cdk

from adoption import config
from adoption.amplify_stack import AmplifyStack
from adoption.cicd_stack import CicdStack
from adoption.ec2_stack import Ec2Stack
from adoption.ecr_stack import EcrStack
from adoption.ecs_stack import EcsStack
from adoption.rds_stack import RdsStack

logger = logging.getLogger(__name__)


def _ec2(app: cdk.App, env: cdk.Environment) -> cdk.Stack:
    return Ec2Stack(app, "AdoptionEC2Stack", config.load(config.Ec2Settings), env=env)


def _ecr(app: cdk.App, env: cdk.Environment) -> cdk.Stack:
    return EcrStack(app, "EcrStack", config.load(config.EcrSettings), env=env)


def _ecs(app: cdk.App, env: cdk.Environment) -> cdk.Stack:
    return EcsStack(app, "EcsStack", config.load(config.EcsSettings), env=env)


def _rds(app: cdk.App, env: cdk.Environment) -> cdk.Stack:
    return RdsStack(
        app,
        "AuroraPostgresAndRedisWithBastionStack",
        config.load(config.RdsSettings),
        env=env,
    )


def _cicd(app: cdk.App, env: cdk.Environment) -> cdk.Stack:
    return CicdStack(app, "CICD3Stack", config.load(config.CicdSettings), env=env)


def _amplify(app: cdk.App, env: cdk.Environment) -> cdk.Stack:
    return AmplifyStack(
        app, "AmplifyNextAppStack", config.load(config.AmplifySettings), env=env
    )


STACK_BUILDERS: Dict[str, Callable[[cdk.App, cdk.Environment], cdk.Stack]] = {
    "ec2": _ec2,
    "ecr": _ecr,
    "ecs": _ecs,
    "rds": _rds,
    "cicd": _cicd,
    "amplify": _amplify,
}


def build(app: cdk.App, deployment: config.DeploymentSettings) -> List[cdk.Stack]:
    unknown = [name for name in deployment.stack_names if name not in STACK_BUILDERS]
    if unknown:
        raise config.ConfigurationError(
            "unknown stacks {0}, expected any of: {1}".format(
                ", ".join(unknown), ", ".join(STACK_BUILDERS)
            )
        )

    env = deployment.environment()
    stacks = []
    for name in deployment.stack_names:
        logger.info("Adding %s stack", name)
        stacks.append(STACK_BUILDERS[name](app, env))
    return stacks
