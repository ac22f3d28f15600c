import boto3
import pytest
from botocore.exceptions import ClientError
from botocore.stub import Stubber

from adoption.certificates import NoDomainCertificateError, find_certificate_arn

CERTIFICATE_ARN = (
    "arn:aws:acm:us-east-1:123456789012:certificate/12345678-1234-1234-1234-123456789012"
)
OTHER_ARN = (
    "arn:aws:acm:us-east-1:123456789012:certificate/87654321-4321-4321-4321-210987654321"
)
ISSUED_ONLY = {"CertificateStatuses": ["ISSUED"]}


@pytest.fixture
def acm():
    client = boto3.client(
        "acm",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )
    with Stubber(client) as stubber:
        yield client, stubber


def test_returns_matching_certificate(acm):
    client, stubber = acm
    stubber.add_response(
        "list_certificates",
        {
            "CertificateSummaryList": [
                {"CertificateArn": OTHER_ARN, "DomainName": "www.example.com"},
                {"CertificateArn": CERTIFICATE_ARN, "DomainName": "adopt.example.com"},
            ]
        },
        ISSUED_ONLY,
    )

    assert find_certificate_arn("adopt.example.com", client=client) == CERTIFICATE_ARN


def test_follows_pagination(acm):
    client, stubber = acm
    stubber.add_response(
        "list_certificates",
        {
            "CertificateSummaryList": [
                {"CertificateArn": OTHER_ARN, "DomainName": "www.example.com"}
            ],
            "NextToken": "page-2",
        },
    )
    stubber.add_response(
        "list_certificates",
        {
            "CertificateSummaryList": [
                {"CertificateArn": CERTIFICATE_ARN, "DomainName": "adopt.example.com"}
            ]
        },
        {"CertificateStatuses": ["ISSUED"], "NextToken": "page-2"},
    )

    assert find_certificate_arn("adopt.example.com", client=client) == CERTIFICATE_ARN


def test_empty_account(acm):
    client, stubber = acm
    stubber.add_response("list_certificates", {"CertificateSummaryList": []})

    with pytest.raises(NoDomainCertificateError):
        find_certificate_arn("adopt.example.com", client=client)


def test_no_matching_domain(acm):
    client, stubber = acm
    stubber.add_response(
        "list_certificates",
        {
            "CertificateSummaryList": [
                {"CertificateArn": OTHER_ARN, "DomainName": "www.example.com"}
            ]
        },
    )

    with pytest.raises(NoDomainCertificateError):
        find_certificate_arn("adopt.example.com", client=client)


def test_client_errors_propagate(acm):
    client, stubber = acm
    stubber.add_client_error("list_certificates", service_error_code="AccessDeniedException")

    with pytest.raises(ClientError):
        find_certificate_arn("adopt.example.com", client=client)


def test_certificates_that_are_not_issued_are_ignored(acm):
    client, stubber = acm
    stubber.add_response(
        "list_certificates",
        {
            "CertificateSummaryList": [
                {
                    "CertificateArn": CERTIFICATE_ARN,
                    "DomainName": "adopt.example.com",
                    "Status": "EXPIRED",
                }
            ]
        },
        ISSUED_ONLY,
    )

    with pytest.raises(NoDomainCertificateError):
        find_certificate_arn("adopt.example.com", client=client)


def test_client_is_created_in_the_requested_region(acm, monkeypatch):
    client, stubber = acm
    stubber.add_response(
        "list_certificates",
        {
            "CertificateSummaryList": [
                {"CertificateArn": CERTIFICATE_ARN, "DomainName": "adopt.example.com"}
            ]
        },
        ISSUED_ONLY,
    )
    created = []

    def fake_client(service_name, **kwargs):
        created.append((service_name, kwargs))
        return client

    monkeypatch.setattr("adoption.certificates.boto3.client", fake_client)

    assert find_certificate_arn("adopt.example.com", region_name="eu-west-1") == CERTIFICATE_ARN
    assert created == [("acm", {"region_name": "eu-west-1"})]
