"""CRL Distribution Point revocation checks."""

import logging
from typing import Optional

from cryptography import x509

from certstatus.certificate import get_crl_urls
from certstatus.exceptions import MalformedCRL, NoCRLDistributionPoints
from certstatus.http_client import DEFAULT_MAX_CRL_BYTES, HTTPFetcher
from certstatus.models import CRLResult, CRLStatus, RevocationReason, RevokedEntry, reason_from_flag

logger = logging.getLogger(__name__)

CRL_ACCEPT = "application/pkix-crl,application/x-pkcs7-crl,*/*"


def get_crl_distribution_point(cert: x509.Certificate) -> str:
    """Return the first CRL Distribution Point URL of a certificate."""
    urls = get_crl_urls(cert)
    if not urls:
        raise NoCRLDistributionPoints()
    return urls[0]


def load_crl(content: bytes) -> x509.CertificateRevocationList:
    """Load a CRL from DER, falling back to PEM."""
    try:
        return x509.load_der_x509_crl(content)
    except ValueError as der_e:
        logger.debug(f"Failed to load CRL as DER: {der_e}")

    try:
        return x509.load_pem_x509_crl(content)
    except ValueError as pem_e:
        raise MalformedCRL(f"failed to parse CRL: {pem_e}") from pem_e


def find_revoked_entry(crl: x509.CertificateRevocationList, serial_number: int) -> Optional[RevokedEntry]:
    """Return the CRL entry for serial_number, or None if it is not listed."""
    for revoked in crl:
        if revoked.serial_number != serial_number:
            continue

        reason = None
        try:
            reason_ext = revoked.extensions.get_extension_for_oid(x509.oid.CRLEntryExtensionOID.CRL_REASON)
            reason = reason_from_flag(reason_ext.value.reason)
        except x509.ExtensionNotFound:
            pass
        except ValueError as e:
            logger.debug(f"Unrecognized CRL reason for serial {revoked.serial_number}: {e}")
            reason = RevocationReason.UNSPECIFIED

        return RevokedEntry(
            serial_number=revoked.serial_number,
            revocation_time=revoked.revocation_date_utc,
            reason=reason,
        )
    return None


def check_crl(
    cert: x509.Certificate,
    fetcher: HTTPFetcher,
    max_crl_bytes: int = DEFAULT_MAX_CRL_BYTES,
) -> CRLResult:
    """
    Check the certificate against the CRL at its first distribution point.

    The CRL signature is not verified.

    Args:
        cert: Certificate to check
        fetcher: HTTP transport
        max_crl_bytes: Maximum CRL size to download

    Returns:
        CRLResult

    Raises:
        NoCRLDistributionPoints: Certificate advertises no CRL URL
        TransportFailure: CRL could not be downloaded
        MalformedCRL: CRL could not be parsed
    """
    url = get_crl_distribution_point(cert)

    logger.debug(f"Fetching CRL from {url}")
    content = fetcher.get(url, headers={"Accept": CRL_ACCEPT}, max_bytes=max_crl_bytes)
    crl = load_crl(content)
    logger.debug(f"CRL from {url} issued by '{crl.issuer.rfc4514_string()}'")

    try:
        entry = find_revoked_entry(crl, cert.serial_number)
    except ValueError as e:
        # Entries are decoded lazily while iterating
        raise MalformedCRL(f"failed to parse CRL entries: {e}") from e

    if entry is None:
        logger.debug(f"Certificate serial {cert.serial_number} not found in CRL revocation list (not revoked)")
        status = CRLStatus.NOT_REVOKED
    else:
        logger.warning(
            f"Certificate serial {cert.serial_number} is REVOKED in CRL (date: {entry.revocation_time})"
        )
        status = CRLStatus.REVOKED

    return CRLResult(
        serial_number=cert.serial_number,
        status=status,
        entry=entry,
        crl_url=url,
        crl_issuer=crl.issuer.rfc4514_string(),
        this_update=crl.last_update_utc,
        next_update=crl.next_update_utc,
    )
