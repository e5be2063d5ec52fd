"""OCSP status checks and response validation."""

import logging
from typing import List, Optional

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed448, ed25519, padding, rsa
from cryptography.x509 import ocsp
from cryptography.x509.oid import ExtendedKeyUsageOID, SignatureAlgorithmOID

from certstatus.certificate import get_ocsp_urls
from certstatus.exceptions import MalformedResponse, NoOCSPServers
from certstatus.http_client import HTTPFetcher
from certstatus.models import OCSPResult, OCSPStatus, RevocationReason, reason_from_flag

logger = logging.getLogger(__name__)

OCSP_REQUEST_CONTENT_TYPE = "application/ocsp-request"
OCSP_RESPONSE_CONTENT_TYPE = "application/ocsp-response"

HASH_ALGORITHMS = {
    "sha1": hashes.SHA1,
    "sha256": hashes.SHA256,
}

_CERT_STATUS = {
    ocsp.OCSPCertStatus.GOOD: OCSPStatus.GOOD,
    ocsp.OCSPCertStatus.REVOKED: OCSPStatus.REVOKED,
    ocsp.OCSPCertStatus.UNKNOWN: OCSPStatus.UNKNOWN,
}


def get_ocsp_server(cert: x509.Certificate) -> str:
    """Return the first OCSP responder URL of a certificate."""
    urls = get_ocsp_urls(cert)
    if not urls:
        raise NoOCSPServers()
    return urls[0]


def build_ocsp_request(
    cert: x509.Certificate,
    issuer: x509.Certificate,
    hash_algorithm: Optional[hashes.HashAlgorithm] = None,
) -> bytes:
    """Build a DER-encoded OCSP request for cert. CertID hash defaults to SHA-1."""
    builder = ocsp.OCSPRequestBuilder()
    builder = builder.add_certificate(cert, issuer, hash_algorithm or hashes.SHA1())
    return builder.build().public_bytes(serialization.Encoding.DER)


def check_ocsp(
    cert: x509.Certificate,
    issuer: x509.Certificate,
    fetcher: HTTPFetcher,
    hash_algorithm: Optional[hashes.HashAlgorithm] = None,
) -> OCSPResult:
    """
    Query the certificate's first OCSP responder.

    Args:
        cert: Certificate to check
        issuer: Issuer certificate, used for the CertID and signature validation
        fetcher: HTTP transport
        hash_algorithm: CertID hash algorithm (default SHA-1)

    Returns:
        OCSPResult

    Raises:
        NoOCSPServers: Certificate advertises no OCSP responder
        TransportFailure: Responder could not be reached
        MalformedResponse: Response is invalid, unsuccessful or badly signed
    """
    url = get_ocsp_server(cert)
    request_der = build_ocsp_request(cert, issuer, hash_algorithm)

    logger.debug(f"Sending OCSP request for serial {cert.serial_number} to {url}")
    body = fetcher.post(
        url,
        content=request_der,
        headers={
            "Content-Type": OCSP_REQUEST_CONTENT_TYPE,
            "Accept": OCSP_RESPONSE_CONTENT_TYPE,
        },
    )

    return parse_ocsp_response(body, cert, issuer, responder_url=url)


def parse_ocsp_response(
    response_der: bytes,
    cert: x509.Certificate,
    issuer: x509.Certificate,
    responder_url: Optional[str] = None,
) -> OCSPResult:
    """
    Parse and validate a DER-encoded OCSP response for cert.

    The response must be successful, contain a SingleResponse for the
    certificate and be signed by the issuer or a delegated responder
    certificate issued by it.

    Raises:
        MalformedResponse: Response is invalid, unsuccessful or badly signed
    """
    try:
        response = ocsp.load_der_ocsp_response(response_der)
    except ValueError as e:
        raise MalformedResponse(f"failed to parse OCSP response: {e}") from e

    if response.response_status != ocsp.OCSPResponseStatus.SUCCESSFUL:
        raise MalformedResponse(f"OCSP responder returned status {response.response_status.name}")

    single = _find_single_response(response, cert, issuer)
    verify_response_signature(response, issuer)

    status = _CERT_STATUS.get(single.certificate_status)
    if status is None:
        raise MalformedResponse(f"unexpected OCSP certificate status: {single.certificate_status}")

    revocation_reason = None
    revocation_time = None
    if status == OCSPStatus.REVOKED:
        try:
            revocation_reason = reason_from_flag(single.revocation_reason)
        except ValueError as e:
            logger.debug(f"Unrecognized OCSP revocation reason for serial {single.serial_number}: {e}")
            revocation_reason = RevocationReason.UNSPECIFIED
        revocation_time = single.revocation_time_utc
        logger.warning(f"Certificate serial {single.serial_number} is REVOKED according to OCSP")

    return OCSPResult(
        serial_number=single.serial_number,
        status=status,
        produced_at=response.produced_at_utc,
        this_update=single.this_update_utc,
        next_update=single.next_update_utc,
        revocation_reason=revocation_reason,
        revocation_time=revocation_time,
        responder_url=responder_url,
    )


def _find_single_response(
    response: ocsp.OCSPResponse,
    cert: x509.Certificate,
    issuer: x509.Certificate,
) -> ocsp.OCSPSingleResponse:
    """Return the SingleResponse whose CertID matches cert and issuer."""
    try:
        singles = list(response.responses)
    except ValueError as e:
        raise MalformedResponse(f"failed to read OCSP single responses: {e}") from e

    for single in singles:
        if single.serial_number != cert.serial_number:
            continue

        # Recompute the CertID issuer hashes with the algorithm the responder used
        try:
            expected = (
                ocsp.OCSPRequestBuilder()
                .add_certificate(cert, issuer, single.hash_algorithm)
                .build()
            )
        except (UnsupportedAlgorithm, ValueError) as e:
            raise MalformedResponse(f"unsupported OCSP CertID hash algorithm: {e}") from e
        if (
            single.issuer_name_hash == expected.issuer_name_hash
            and single.issuer_key_hash == expected.issuer_key_hash
        ):
            return single
        logger.debug(f"OCSP single response for serial {cert.serial_number} has mismatching issuer hashes")

    raise MalformedResponse(f"OCSP response does not cover serial number {cert.serial_number}")


def _responder_candidates(response: ocsp.OCSPResponse, issuer: x509.Certificate) -> List[x509.Certificate]:
    """
    Certificates that may have signed the response: the issuer itself, and
    embedded certificates directly issued by it with the OCSPSigning EKU.
    """
    candidates = [issuer]
    for responder_cert in response.certificates:
        if responder_cert == issuer:
            continue
        try:
            responder_cert.verify_directly_issued_by(issuer)
        except (ValueError, TypeError, InvalidSignature) as e:
            logger.debug(
                f"Embedded certificate '{responder_cert.subject.rfc4514_string()}' "
                f"is not issued by the issuer: {e}"
            )
            continue

        try:
            eku = responder_cert.extensions.get_extension_for_class(x509.ExtendedKeyUsage).value
        except x509.ExtensionNotFound:
            logger.debug(f"Delegated responder '{responder_cert.subject.rfc4514_string()}' has no EKU")
            continue
        if ExtendedKeyUsageOID.OCSP_SIGNING not in eku:
            logger.debug(f"Delegated responder '{responder_cert.subject.rfc4514_string()}' lacks OCSPSigning EKU")
            continue

        candidates.append(responder_cert)
    return candidates


def _matches_responder_id(response: ocsp.OCSPResponse, responder_cert: x509.Certificate) -> bool:
    if response.responder_name is not None:
        return response.responder_name == responder_cert.subject
    if response.responder_key_hash is not None:
        key_id = x509.SubjectKeyIdentifier.from_public_key(responder_cert.public_key())
        return response.responder_key_hash == key_id.digest
    return False


def _rsa_padding(signature_algorithm_oid: x509.ObjectIdentifier, hash_algorithm) -> padding.AsymmetricPadding:
    if signature_algorithm_oid == SignatureAlgorithmOID.RSASSA_PSS:
        return padding.PSS(mgf=padding.MGF1(hash_algorithm), salt_length=padding.PSS.AUTO)
    return padding.PKCS1v15()


def _verify_signature(
    public_key,
    signature: bytes,
    data: bytes,
    hash_algorithm,
    signature_algorithm_oid: x509.ObjectIdentifier,
) -> None:
    if isinstance(public_key, rsa.RSAPublicKey):
        public_key.verify(signature, data, _rsa_padding(signature_algorithm_oid, hash_algorithm), hash_algorithm)
    elif isinstance(public_key, ec.EllipticCurvePublicKey):
        public_key.verify(signature, data, ec.ECDSA(hash_algorithm))
    elif isinstance(public_key, (ed25519.Ed25519PublicKey, ed448.Ed448PublicKey)):
        public_key.verify(signature, data)
    else:
        raise MalformedResponse(f"unsupported OCSP responder key type: {type(public_key).__name__}")


def verify_response_signature(response: ocsp.OCSPResponse, issuer: x509.Certificate) -> x509.Certificate:
    """
    Verify the response signature against the issuer or a delegated responder.

    Returns:
        The certificate whose key verified the signature

    Raises:
        MalformedResponse: No candidate responder verifies the signature
    """
    candidates = [c for c in _responder_candidates(response, issuer) if _matches_responder_id(response, c)]
    if not candidates:
        raise MalformedResponse("OCSP response is not signed by the issuer or an authorized responder")

    try:
        hash_algorithm = response.signature_hash_algorithm
    except UnsupportedAlgorithm as e:
        raise MalformedResponse(f"unsupported OCSP signature algorithm: {e}") from e

    for responder_cert in candidates:
        try:
            _verify_signature(
                responder_cert.public_key(),
                response.signature,
                response.tbs_response_bytes,
                hash_algorithm,
                response.signature_algorithm_oid,
            )
        except InvalidSignature:
            logger.debug(
                f"OCSP signature does not verify against '{responder_cert.subject.rfc4514_string()}'"
            )
            continue
        logger.debug(f"OCSP response signed by '{responder_cert.subject.rfc4514_string()}'")
        return responder_cert

    raise MalformedResponse("OCSP response signature verification failed")
