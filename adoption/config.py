"""Typed settings read from the process environment.

``app.py`` loads ``.env`` with python-dotenv before any of these classes are
instantiated, so every value here comes from either the real environment or
the project's ``.env`` file.
"""
import ipaddress
import logging
from typing import List, Optional, Type, TypeVar

import aws_cdk as cdk
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=BaseSettings)


class ConfigurationError(Exception):
    pass


def normalise_cidr(value: str) -> str:
    """Return ``value`` as an IPv4 CIDR, appending ``/32`` to bare addresses."""
    return str(ipaddress.IPv4Network(value.strip()))


class _Settings(BaseSettings):
    model_config = SettingsConfigDict(
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )


class AllowListSettings(_Settings):
    sg_ip: Optional[str] = Field(default=None, alias="SG_IP")
    sg_ip2: Optional[str] = Field(default=None, alias="SG_IP2")
    sg_ip3: Optional[str] = Field(default=None, alias="SG_IP3")
    sg_ip4: Optional[str] = Field(default=None, alias="SG_IP4")

    @field_validator("sg_ip", "sg_ip2", "sg_ip3", "sg_ip4", mode="before")
    @classmethod
    def validate_cidr(cls, v):
        if v is None or not str(v).strip():
            return None
        try:
            return normalise_cidr(str(v))
        except ValueError as e:
            raise ValueError(f"not an IPv4 address or CIDR: {v!r}") from e

    @property
    def allowed_cidrs(self) -> List[str]:
        """Configured entries in order, without blanks or duplicates."""
        return list(
            dict.fromkeys(
                ip for ip in (self.sg_ip, self.sg_ip2, self.sg_ip3, self.sg_ip4) if ip
            )
        )

    @property
    def primary_cidrs(self) -> List[str]:
        # ALB listener rules and the WAF IP set only admit SG_IP and SG_IP2.
        return list(dict.fromkeys(ip for ip in (self.sg_ip, self.sg_ip2) if ip))


class Ec2Settings(AllowListSettings):
    key_name: str = Field(default="key", alias="EC2_KEY_NAME")
    profile: str = Field(default="adoption", alias="EC2_PROFILE")


class EcrSettings(_Settings):
    repository_name: str = Field(default="my-ecr-repo", alias="ECR_REPOSITORY_NAME")
    docker_directory: str = Field(
        default="./docker/adoption", alias="ECR_DOCKER_DIRECTORY"
    )


class EcsSettings(AllowListSettings):
    role_arn: str = Field(alias="ROLE_ARN")
    container_image: str = Field(alias="ECR_URI_ADOPTION_NEXTJS")
    domain_name: str = Field(alias="DOMAIN_NAME")
    sub_domain_name: str = Field(alias="SUB_DOMAIN_NAME")
    container_port: int = Field(default=3000, alias="CONTAINER_PORT")
    certificate_arn: Optional[str] = Field(default=None, alias="CERTIFICATE_ARN")
    reuse_certificate: bool = Field(default=False, alias="REUSE_CERTIFICATE")

    @property
    def fqdn(self) -> str:
        return f"{self.sub_domain_name}.{self.domain_name}"


class RdsSettings(_Settings):
    bastion_cidr: str = Field(default="0.0.0.0/0", alias="BASTION_IP")
    database_name: str = Field(default="wordpress_dev", alias="DATABASE_NAME")
    master_username: str = Field(default="postgres", alias="DATABASE_USERNAME")
    engine_version: str = Field(default="15.4", alias="AURORA_POSTGRES_VERSION")
    instance_count: int = Field(default=2, ge=1, alias="AURORA_INSTANCES")
    redis_node_type: str = Field(default="cache.t3.micro", alias="REDIS_NODE_TYPE")
    nat_gateways: int = Field(default=1, ge=0, alias="NAT_GATEWAYS")

    @field_validator("bastion_cidr", mode="before")
    @classmethod
    def validate_bastion_cidr(cls, v):
        if v is None or not str(v).strip():
            return "0.0.0.0/0"
        return normalise_cidr(str(v))

    @property
    def engine_major_version(self) -> str:
        return self.engine_version.split(".")[0]


class CicdSettings(_Settings):
    vpc_id: str = Field(alias="VPC_ID")
    repository_name: str = Field(alias="ECR_NAME_ADOPTION_GO")
    image_uri: str = Field(alias="ECR_URI_ADOPTION_GO")
    cluster_name: str = Field(alias="CLUSTER")
    source_repository: str = Field(alias="CODECOMMIT_ADOPTION_GO")
    container_name: str = Field(alias="BACKEND_CONTAINER_NAME")
    service_arn: str = Field(alias="ECS_BACKEND_ARN")
    region: str = Field(alias="CDK_DEFAULT_REGION")
    branch: str = Field(default="main", alias="CODECOMMIT_BRANCH")
    # Secrets Manager secret holding "username" and "password" JSON keys.
    dockerhub_secret: Optional[str] = Field(default=None, alias="DOCKERHUB_SECRET")

    @property
    def dockerhub_login(self) -> bool:
        return bool(self.dockerhub_secret)


class AmplifySettings(AllowListSettings):
    repository_name: str = Field(default="adoption_nextjs", alias="AMPLIFY_REPOSITORY")
    branch_name: str = Field(default="main", alias="AMPLIFY_BRANCH")


class DeploymentSettings(_Settings):
    account: Optional[str] = Field(default=None, alias="CDK_DEFAULT_ACCOUNT")
    region: Optional[str] = Field(default=None, alias="CDK_DEFAULT_REGION")
    stacks: str = Field(default="ec2", alias="ADOPTION_STACKS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v):
        level = str(v or "INFO").strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {v!r}")
        return level

    @property
    def stack_names(self) -> List[str]:
        return [name.strip() for name in self.stacks.split(",") if name.strip()]

    def environment(self) -> cdk.Environment:
        return cdk.Environment(account=self.account, region=self.region)


def load(settings_cls: Type[S], **overrides) -> S:
    """Instantiate ``settings_cls``, reporting bad input as ConfigurationError."""
    try:
        settings = settings_cls(**overrides)
    except ValidationError as e:
        names = sorted({str(error["loc"][0]) for error in e.errors() if error["loc"]})
        raise ConfigurationError(
            "invalid or missing settings for {0}: {1}".format(
                settings_cls.__name__, ", ".join(names)
            )
        ) from e
    logger.debug("Loaded %s", settings_cls.__name__)
    return settings
