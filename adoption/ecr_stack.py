import aws_cdk as cdk
from aws_cdk import aws_ecr as ecr, aws_ecr_assets as ecr_assets
from constructs import Construct

from adoption.config import EcrSettings


class EcrStack(cdk.Stack):
    def __init__(
        self, scope: Construct, construct_id: str, settings: EcrSettings, **kwargs
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.repository = ecr.Repository(
            self, "AdoptionEcrRepo", repository_name=settings.repository_name
        )

        # Built from the local Dockerfile and pushed to the CDK asset repository.
        self.image = ecr_assets.DockerImageAsset(
            self, "AdoptionDockerImage", directory=settings.docker_directory
        )

        cdk.CfnOutput(self, "EcrRepoUri", value=self.repository.repository_uri)
