"""Shared fixtures: a small PKI, OCSP responses and CRLs built with cryptography."""

from datetime import datetime, timedelta

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509 import ocsp
from cryptography.x509.oid import AuthorityInformationAccessOID, ExtendedKeyUsageOID, ExtensionOID, NameOID

from certstatus.exceptions import TransportFailure

ISSUER_URL = "http://cacerts.example.com/IssuingCA.crt"
ISSUER_MIRROR_URL = "http://mirror.example.com/IssuingCA.crt"
OCSP_URL = "http://ocsp.example.com"
OCSP_BACKUP_URL = "http://ocsp2.example.com"
CRL_URL = "http://crl.example.com/IssuingCA.crl"
CRL_BACKUP_URL = "http://crl2.example.com/IssuingCA.crl"

LEAF_SERIAL = 16190166165489431910151563605275097819

THIS_UPDATE = datetime(2017, 12, 23, 6, 30, 33)
NEXT_UPDATE = datetime(2017, 12, 30, 5, 45, 33)


def _name(common_name: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])


def make_certificate(
    subject: str,
    issuer_name: str,
    public_key,
    signing_key,
    serial_number=None,
    ca: bool = False,
    ca_issuers_urls=(),
    ocsp_urls=(),
    crl_urls=(),
    extended_key_usage=None,
) -> x509.Certificate:
    builder = (
        x509.CertificateBuilder()
        .subject_name(_name(subject))
        .issuer_name(_name(issuer_name))
        .public_key(public_key)
        .serial_number(serial_number or x509.random_serial_number())
        .not_valid_before(datetime(2017, 1, 1))
        .not_valid_after(datetime(2037, 1, 1))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
    )

    access = [
        x509.AccessDescription(AuthorityInformationAccessOID.CA_ISSUERS, x509.UniformResourceIdentifier(url))
        for url in ca_issuers_urls
    ] + [
        x509.AccessDescription(AuthorityInformationAccessOID.OCSP, x509.UniformResourceIdentifier(url))
        for url in ocsp_urls
    ]
    if access:
        builder = builder.add_extension(x509.AuthorityInformationAccess(access), critical=False)

    if crl_urls:
        points = [
            x509.DistributionPoint(
                full_name=[x509.UniformResourceIdentifier(url)],
                relative_name=None,
                reasons=None,
                crl_issuer=None,
            )
            for url in crl_urls
        ]
        builder = builder.add_extension(x509.CRLDistributionPoints(points), critical=False)

    if extended_key_usage:
        builder = builder.add_extension(x509.ExtendedKeyUsage(extended_key_usage), critical=False)

    return builder.sign(signing_key, hashes.SHA256())


# DER pieces for re-signing a modified tbs outside the cryptography builders
ECDSA_WITH_SHA256 = bytes.fromhex("300a06082a8648ce3d040302")
RSASSA_PSS_SHA256 = bytes.fromhex(
    "3041"
    "06092a864886f70d01010a"  # id-RSASSA-PSS
    "3034"
    "a00f300d06096086480165030402010500"  # hashAlgorithm sha256
    "a11c301a06092a864886f70d010108300d06096086480165030402010500"  # MGF1(sha256)
    "a203020120"  # saltLength 32
)
_OCSP_BASIC = bytes.fromhex("06092b0601050507300101")


def der(tag: int, content: bytes) -> bytes:
    length = len(content)
    if length < 0x80:
        header = bytes([length])
    else:
        size = length.to_bytes((length.bit_length() + 7) // 8, "big")
        header = bytes([0x80 | len(size)]) + size
    return bytes([tag]) + header + content


def encode_ocsp_response(tbs: bytes, signature: bytes, signature_algorithm: bytes = ECDSA_WITH_SHA256) -> bytes:
    """Successful OCSPResponse wrapping a BasicOCSPResponse over tbs."""
    basic = der(0x30, tbs + signature_algorithm + der(0x03, b"\x00" + signature))
    response_bytes = der(0x30, _OCSP_BASIC + der(0x04, basic))
    return der(0x30, b"\x0a\x01\x00" + der(0xA0, response_bytes))


def encode_crl(tbs: bytes, signature: bytes, signature_algorithm: bytes = ECDSA_WITH_SHA256) -> bytes:
    return der(0x30, tbs + signature_algorithm + der(0x03, b"\x00" + signature))


class StubFetcher:
    """HTTPFetcher returning canned bodies and recording every request."""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        pass

    def _respond(self, url):
        response = self.responses.get(url)
        if response is None:
            raise TransportFailure(url, "connection refused")
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, headers=None, max_bytes=None):
        self.calls.append(("GET", url, None, headers))
        return self._respond(url)

    def post(self, url, content, headers=None):
        self.calls.append(("POST", url, content, headers))
        return self._respond(url)

    @property
    def urls(self):
        return [url for _, url, _, _ in self.calls]


@pytest.fixture(scope="session")
def ca_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def ca_cert(ca_key):
    return make_certificate("Test Issuing CA", "Test Root CA", ca_key.public_key(), ca_key, ca=True)


@pytest.fixture(scope="session")
def leaf_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def leaf_cert(leaf_key, ca_key):
    return make_certificate(
        "leaf.example.com",
        "Test Issuing CA",
        leaf_key.public_key(),
        ca_key,
        serial_number=LEAF_SERIAL,
        ca_issuers_urls=[ISSUER_URL, ISSUER_MIRROR_URL],
        ocsp_urls=[OCSP_URL, OCSP_BACKUP_URL],
        crl_urls=[CRL_URL, CRL_BACKUP_URL],
    )


@pytest.fixture(scope="session")
def bare_leaf_cert(leaf_key, ca_key):
    """Leaf certificate without AIA or CDP extensions."""
    return make_certificate("bare.example.com", "Test Issuing CA", leaf_key.public_key(), ca_key)


@pytest.fixture(scope="session")
def broken_aia_cert(leaf_key, ca_key):
    """Leaf certificate whose AIA extension value is not valid DER."""
    return (
        x509.CertificateBuilder()
        .subject_name(_name("broken.example.com"))
        .issuer_name(_name("Test Issuing CA"))
        .public_key(leaf_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(datetime(2017, 1, 1))
        .not_valid_after(datetime(2037, 1, 1))
        .add_extension(
            x509.UnrecognizedExtension(ExtensionOID.AUTHORITY_INFORMATION_ACCESS, b"\x01\x02"),
            critical=False,
        )
        .sign(ca_key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def rsa_ca_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_ca_cert(rsa_ca_key):
    return make_certificate("Test RSA CA", "Test Root CA", rsa_ca_key.public_key(), rsa_ca_key, ca=True)


@pytest.fixture(scope="session")
def rsa_leaf_cert(leaf_key, rsa_ca_key):
    return make_certificate(
        "rsa-leaf.example.com",
        "Test RSA CA",
        leaf_key.public_key(),
        rsa_ca_key,
        ocsp_urls=[OCSP_URL],
    )


@pytest.fixture(scope="session")
def ca_cert_der(ca_cert):
    return ca_cert.public_bytes(serialization.Encoding.DER)


@pytest.fixture
def leaf_pem_file(tmp_path, leaf_cert):
    path = tmp_path / "certificate.pem"
    path.write_bytes(leaf_cert.public_bytes(serialization.Encoding.PEM))
    return path


@pytest.fixture
def build_ocsp_response(leaf_cert, ca_cert, ca_key):
    """Factory for DER-encoded OCSP responses about leaf_cert."""

    def build(
        cert_status=ocsp.OCSPCertStatus.GOOD,
        revocation_time=None,
        revocation_reason=None,
        cert=None,
        responder_cert=None,
        signing_key=None,
        embedded_certs=None,
        responder_encoding=ocsp.OCSPResponderEncoding.HASH,
        next_update=NEXT_UPDATE,
    ) -> bytes:
        builder = ocsp.OCSPResponseBuilder().add_response(
            cert=cert or leaf_cert,
            issuer=ca_cert,
            algorithm=hashes.SHA1(),
            cert_status=cert_status,
            this_update=THIS_UPDATE,
            next_update=next_update,
            revocation_time=revocation_time,
            revocation_reason=revocation_reason,
        )
        builder = builder.responder_id(responder_encoding, responder_cert or ca_cert)
        if embedded_certs:
            builder = builder.certificates(embedded_certs)
        response = builder.sign(signing_key or ca_key, hashes.SHA256())
        return response.public_bytes(serialization.Encoding.DER)

    return build


@pytest.fixture
def build_crl(ca_cert, ca_key):
    """Factory for DER-encoded CRLs signed by the issuing CA."""

    def build(entries=(), encoding=serialization.Encoding.DER) -> bytes:
        builder = (
            x509.CertificateRevocationListBuilder()
            .issuer_name(ca_cert.subject)
            .last_update(THIS_UPDATE)
            .next_update(NEXT_UPDATE)
        )
        for serial_number, revoked_at, reason in entries:
            revoked = x509.RevokedCertificateBuilder().serial_number(serial_number).revocation_date(revoked_at)
            if reason is not None:
                revoked = revoked.add_extension(x509.CRLReason(reason), critical=False)
            builder = builder.add_revoked_certificate(revoked.build())
        return builder.sign(ca_key, hashes.SHA256()).public_bytes(encoding)

    return build


@pytest.fixture
def delegated_responder(ca_key):
    """Delegated OCSP responder (certificate, key) issued by the CA."""
    key = ec.generate_private_key(ec.SECP256R1())
    cert = make_certificate(
        "Test OCSP Responder",
        "Test Issuing CA",
        key.public_key(),
        ca_key,
        extended_key_usage=[ExtendedKeyUsageOID.OCSP_SIGNING],
    )
    return cert, key
