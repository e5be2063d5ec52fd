"""Certificate loading and metadata extraction."""

import logging
import warnings
from pathlib import Path
from typing import List, Union

from asn1crypto import pem
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.utils import CryptographyDeprecationWarning
from cryptography.x509.oid import AuthorityInformationAccessOID, ExtensionOID

from certstatus.exceptions import CertificateReadError, MalformedCertificate, NotACertificate
from certstatus.models import CertificateInfo

logger = logging.getLogger(__name__)

PEM_CERTIFICATE_LABEL = "CERTIFICATE"

# Show cryptography deprecation warnings instead of suppressing them
_debug_warnings = False


def set_debug_warnings(enabled: bool) -> None:
    """Enable or disable pass-through of cryptography deprecation warnings."""
    global _debug_warnings
    _debug_warnings = enabled


def _load_der_certificate(der: bytes) -> x509.Certificate:
    with warnings.catch_warnings():
        if not _debug_warnings:
            # Non-positive serial numbers etc. are common in the wild
            warnings.simplefilter("ignore", CryptographyDeprecationWarning)
        try:
            cert = x509.load_der_x509_certificate(der)
            # Extensions are decoded lazily; surface broken AIA/CDP data here
            cert.extensions
        except (ValueError, x509.DuplicateExtension) as e:
            raise MalformedCertificate(f"failed to parse certificate: {e}") from e
    return cert


def load_certificate(data: bytes) -> x509.Certificate:
    """
    Load a certificate from PEM or DER bytes.

    If the input contains PEM armor, the first block must be labelled
    CERTIFICATE. Input without armor is parsed as DER.

    Raises:
        NotACertificate: PEM block with a different label
        MalformedCertificate: Bytes do not encode a certificate
    """
    if pem.detect(data):
        try:
            label, _, der = pem.unarmor(data)
        except ValueError as e:
            raise MalformedCertificate(f"invalid PEM data: {e}") from e
        if label != PEM_CERTIFICATE_LABEL:
            raise NotACertificate(label)
        return _load_der_certificate(der)

    return _load_der_certificate(data)


def read_certificate(path: Union[str, Path]) -> x509.Certificate:
    """Read and load a certificate file."""
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise CertificateReadError(f"failed to read certificate: {e}") from e
    return load_certificate(data)


def _uri_values(names) -> List[str]:
    return [name.value for name in names if isinstance(name, x509.UniformResourceIdentifier)]


def get_ca_issuers_urls(cert: x509.Certificate) -> List[str]:
    """AIA CA Issuers URLs in certificate order."""
    return _get_aia_urls(cert, AuthorityInformationAccessOID.CA_ISSUERS)


def get_ocsp_urls(cert: x509.Certificate) -> List[str]:
    """AIA OCSP responder URLs in certificate order."""
    return _get_aia_urls(cert, AuthorityInformationAccessOID.OCSP)


def _get_aia_urls(cert: x509.Certificate, method: x509.ObjectIdentifier) -> List[str]:
    try:
        aia = cert.extensions.get_extension_for_oid(ExtensionOID.AUTHORITY_INFORMATION_ACCESS).value
    except x509.ExtensionNotFound:
        return []
    return _uri_values(desc.access_location for desc in aia if desc.access_method == method)


def get_crl_urls(cert: x509.Certificate) -> List[str]:
    """CRL Distribution Point URLs in certificate order."""
    try:
        cdp = cert.extensions.get_extension_for_oid(ExtensionOID.CRL_DISTRIBUTION_POINTS).value
    except x509.ExtensionNotFound:
        return []

    urls: List[str] = []
    for point in cdp:
        if point.full_name:
            urls.extend(_uri_values(point.full_name))
    return urls


def parse_certificate(cert: x509.Certificate) -> CertificateInfo:
    """Extract the fields used by revocation checks from a certificate."""
    return CertificateInfo(
        subject=cert.subject.rfc4514_string(),
        issuer=cert.issuer.rfc4514_string(),
        serial_number=cert.serial_number,
        not_before=cert.not_valid_before_utc,
        not_after=cert.not_valid_after_utc,
        crl_distribution_points=get_crl_urls(cert),
        ocsp_responder_urls=get_ocsp_urls(cert),
        ca_issuers_urls=get_ca_issuers_urls(cert),
        fingerprint_sha256=cert.fingerprint(hashes.SHA256()).hex(),
    )
