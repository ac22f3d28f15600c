import aws_cdk as cdk
import pytest

SETTINGS_VARIABLES = (
    "CDK_DEFAULT_ACCOUNT",
    "CDK_DEFAULT_REGION",
    "ADOPTION_STACKS",
    "SG_IP",
    "SG_IP2",
    "SG_IP3",
    "SG_IP4",
    "EC2_PROFILE",
    "EC2_KEY_NAME",
    "ECR_REPOSITORY_NAME",
    "ECR_DOCKER_DIRECTORY",
    "ROLE_ARN",
    "ECR_URI_ADOPTION_NEXTJS",
    "DOMAIN_NAME",
    "SUB_DOMAIN_NAME",
    "CONTAINER_PORT",
    "CERTIFICATE_ARN",
    "REUSE_CERTIFICATE",
    "BASTION_IP",
    "DATABASE_NAME",
    "DATABASE_USERNAME",
    "AURORA_POSTGRES_VERSION",
    "AURORA_INSTANCES",
    "REDIS_NODE_TYPE",
    "NAT_GATEWAYS",
    "VPC_ID",
    "ECR_NAME_ADOPTION_GO",
    "ECR_URI_ADOPTION_GO",
    "CLUSTER",
    "CODECOMMIT_ADOPTION_GO",
    "CODECOMMIT_BRANCH",
    "BACKEND_CONTAINER_NAME",
    "ECS_BACKEND_ARN",
    "DOCKERHUB_SECRET",
    "LOG_LEVEL",
    "AMPLIFY_REPOSITORY",
    "AMPLIFY_BRANCH",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the developer's shell and .env out of the settings under test."""
    for name in SETTINGS_VARIABLES:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def app():
    return cdk.App()


@pytest.fixture
def env():
    return cdk.Environment(account="123456789012", region="us-east-1")


@pytest.fixture
def allow_list(monkeypatch):
    monkeypatch.setenv("SG_IP", "203.0.113.10")
    monkeypatch.setenv("SG_IP2", "198.51.100.0/24")


@pytest.fixture
def docker_directory(tmp_path):
    (tmp_path / "Dockerfile").write_text("FROM scratch\n")
    return str(tmp_path)
