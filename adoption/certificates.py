import logging

import boto3

logger = logging.getLogger(__name__)


class NoDomainCertificateError(Exception):
    pass


def find_certificate_arn(domain_name: str, client=None, region_name=None) -> str:
    """Return the ARN of the issued ACM certificate for ``domain_name``.

    The lookup runs in ``region_name`` (the stack's region) unless a client is
    given. Raises NoDomainCertificateError when the account holds no issued
    certificate for that domain. botocore ClientError is left to the caller.
    """
    acm = client or boto3.client("acm", region_name=region_name)
    paginator = acm.get_paginator("list_certificates")

    certificates = []
    for page in paginator.paginate(CertificateStatuses=["ISSUED"]):
        certificates.extend(page["CertificateSummaryList"])

    if len(certificates) == 0:
        raise NoDomainCertificateError(domain_name)

    result = [
        cert
        for cert in certificates
        if cert["DomainName"] == domain_name and cert.get("Status", "ISSUED") == "ISSUED"
    ]
    if len(result) == 0:
        raise NoDomainCertificateError(domain_name)

    logger.info("Reusing ACM certificate %s for %s", result[0]["CertificateArn"], domain_name)
    return result[0]["CertificateArn"]
