"""Issuer certificate resolution via Authority Information Access."""

import logging

from cryptography import x509

from certstatus.certificate import get_ca_issuers_urls, load_certificate
from certstatus.exceptions import NoIssuerURLs, NoReachableIssuer, TransportFailure
from certstatus.http_client import HTTPFetcher

logger = logging.getLogger(__name__)

CA_ISSUERS_ACCEPT = "application/pkix-cert,application/x-x509-ca-cert,*/*"


def resolve_issuer(cert: x509.Certificate, fetcher: HTTPFetcher) -> x509.Certificate:
    """
    Fetch the issuer certificate from the leaf's AIA CA Issuers URLs.

    URLs are tried in certificate order and the first certificate fetched
    is returned. An unreachable URL is skipped, but a URL that answers with
    something other than a certificate aborts resolution.

    Args:
        cert: Leaf certificate
        fetcher: HTTP transport

    Returns:
        Issuer certificate

    Raises:
        NoIssuerURLs: Certificate has no CA Issuers URLs
        NoReachableIssuer: No URL could be fetched
        NotACertificate, MalformedCertificate: A fetched body is not a certificate
    """
    urls = get_ca_issuers_urls(cert)
    if not urls:
        raise NoIssuerURLs()

    for url in urls:
        logger.debug(f"Fetching issuer certificate from {url}")
        try:
            body = fetcher.get(url, headers={"Accept": CA_ISSUERS_ACCEPT})
        except TransportFailure as e:
            logger.debug(f"Skipping issuer URL {url}: {e.reason}")
            continue

        issuer = load_certificate(body)
        if issuer.subject != cert.issuer:
            logger.warning(
                f"Fetched certificate subject '{issuer.subject.rfc4514_string()}' "
                f"does not match expected issuer '{cert.issuer.rfc4514_string()}'"
            )
        logger.debug(f"Resolved issuer '{issuer.subject.rfc4514_string()}' from {url}")
        return issuer

    raise NoReachableIssuer(urls)
