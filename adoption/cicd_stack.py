import logging

import aws_cdk as cdk
from aws_cdk import (
    aws_codebuild as codebuild,
    aws_codecommit as codecommit,
    aws_codepipeline as codepipeline,
    aws_codepipeline_actions as codepipeline_actions,
    aws_ec2 as ec2,
    aws_ecr as ecr,
    aws_ecs as ecs,
    aws_iam as iam,
)
from constructs import Construct

from adoption.config import CicdSettings

logger = logging.getLogger(__name__)


def build_spec(settings: CicdSettings) -> dict:
    """Buildspec that pushes the backend image and emits imagedefinitions.json."""
    pre_build = [
        "echo Logging in to Amazon ECR...",
        f"aws ecr get-login-password --region {settings.region} | docker login --username AWS --password-stdin {settings.image_uri}",
    ]
    if settings.dockerhub_login:
        pre_build.append(
            'echo "$DOCKERHUB_PASSWORD" | docker login --username "$DOCKERHUB_USERNAME" --password-stdin'
        )

    image_definitions = '[{{"name":"{0}","imageUri":"{1}"}}]'.format(
        settings.container_name, settings.image_uri
    )

    return {
        "version": "0.2",
        "phases": {
            "pre_build": {"commands": pre_build},
            "build": {
                "commands": [
                    "echo Build started on `date`",
                    f"docker build -t {settings.image_uri} -f ./Dockerfile .",
                    f"docker push {settings.image_uri}",
                ]
            },
            "post_build": {
                "commands": [
                    "echo Build completed on `date`",
                    f"printf '{image_definitions}' > imagedefinitions.json",
                ]
            },
        },
        "artifacts": {
            "files": ["imagedefinitions.json"],
            "base-directory": ".",
        },
    }


class CicdStack(cdk.Stack):
    def __init__(
        self, scope: Construct, construct_id: str, settings: CicdSettings, **kwargs
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        vpc = ec2.Vpc.from_lookup(self, "AdoptionImportedVpc", vpc_id=settings.vpc_id)

        repository = ecr.Repository.from_repository_name(
            self, "AdoptionECRBackend", settings.repository_name
        )

        cluster = ecs.Cluster.from_cluster_attributes(
            self, "AdoptionCluster", cluster_name=settings.cluster_name, vpc=vpc
        )

        source_repository = codecommit.Repository.from_repository_name(
            self, "AdoptionCodeCommitRepo", settings.source_repository
        )

        source_output = codepipeline.Artifact()
        build_output = codepipeline.Artifact()

        environment_variables = {}
        if settings.dockerhub_login:
            # Resolved by CodeBuild at build time, never rendered into the template.
            environment_variables = {
                name: codebuild.BuildEnvironmentVariable(
                    type=codebuild.BuildEnvironmentVariableType.SECRETS_MANAGER,
                    value=f"{settings.dockerhub_secret}:{key}",
                )
                for name, key in (
                    ("DOCKERHUB_USERNAME", "username"),
                    ("DOCKERHUB_PASSWORD", "password"),
                )
            }

        self.build_project = codebuild.PipelineProject(
            self,
            "BuildProject",
            environment=codebuild.BuildEnvironment(
                build_image=codebuild.LinuxBuildImage.STANDARD_7_0,
                # docker daemon
                privileged=True,
            ),
            environment_variables=environment_variables,
            build_spec=codebuild.BuildSpec.from_object(build_spec(settings)),
        )

        self.build_project.add_to_role_policy(
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=[
                    "ecr:GetDownloadUrlForLayer",
                    "ecr:BatchGetImage",
                    "ecr:BatchCheckLayerAvailability",
                    "ecr:GetAuthorizationToken",
                    "ecr:PutImage",
                    "ecr:InitiateLayerUpload",
                    "ecr:UploadLayerPart",
                    "ecr:CompleteLayerUpload",
                ],
                resources=["*"],
            )
        )

        service = ecs.FargateService.from_fargate_service_attributes(
            self, "AdoptionService", service_arn=settings.service_arn, cluster=cluster
        )

        self.pipeline = codepipeline.Pipeline(
            self,
            "AdoptionPipeline",
            stages=[
                codepipeline.StageProps(
                    stage_name="Source",
                    actions=[
                        codepipeline_actions.CodeCommitSourceAction(
                            action_name="CodeCommit",
                            repository=source_repository,
                            branch=settings.branch,
                            output=source_output,
                        )
                    ],
                ),
                codepipeline.StageProps(
                    stage_name="Build",
                    actions=[
                        codepipeline_actions.CodeBuildAction(
                            action_name="CodeBuild",
                            project=self.build_project,
                            input=source_output,
                            outputs=[build_output],
                        )
                    ],
                ),
                codepipeline.StageProps(
                    stage_name="Deploy",
                    actions=[
                        codepipeline_actions.EcsDeployAction(
                            action_name="ECSDeploy",
                            service=service,
                            input=build_output,
                        )
                    ],
                ),
            ],
        )

        repository.grant_pull_push(self.build_project.role)
        logger.info(
            "Pipeline deploys %s from %s@%s",
            settings.container_name,
            settings.source_repository,
            settings.branch,
        )
