"""Data models for revocation check results."""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, List, Union
from datetime import datetime

from cryptography import x509


class OCSPStatus(str, Enum):
    """Certificate status reported by an OCSP responder."""

    GOOD = "Good"
    REVOKED = "Revoked"
    UNKNOWN = "Unknown"


class CRLStatus(str, Enum):
    """Certificate status derived from a CRL."""

    NOT_REVOKED = "Not revoked"
    REVOKED = "Revoked"


class RevocationReason(IntEnum):
    """CRLReason codes (RFC 5280, section 5.3.1). Code 7 is unused."""

    UNSPECIFIED = 0
    KEY_COMPROMISE = 1
    CA_COMPROMISE = 2
    AFFILIATION_CHANGED = 3
    SUPERSEDED = 4
    CESSATION_OF_OPERATION = 5
    CERTIFICATE_HOLD = 6
    REMOVE_FROM_CRL = 8
    PRIVILEGE_WITHDRAWN = 9
    AA_COMPROMISE = 10


_REASON_PHRASES = {
    RevocationReason.UNSPECIFIED: "Unspecified reason",
    RevocationReason.KEY_COMPROMISE: "Key compromise",
    RevocationReason.CA_COMPROMISE: "CA compromise",
    RevocationReason.AFFILIATION_CHANGED: "Affiliation changed",
    RevocationReason.SUPERSEDED: "Superseded",
    RevocationReason.CESSATION_OF_OPERATION: "Cessation of operation",
    RevocationReason.CERTIFICATE_HOLD: "Certificate hold",
    RevocationReason.REMOVE_FROM_CRL: "Remove from CRL",
    RevocationReason.PRIVILEGE_WITHDRAWN: "Privilege withdrawn",
    RevocationReason.AA_COMPROMISE: "AA compromise",
}

_REASON_FLAGS = {
    x509.ReasonFlags.unspecified: RevocationReason.UNSPECIFIED,
    x509.ReasonFlags.key_compromise: RevocationReason.KEY_COMPROMISE,
    x509.ReasonFlags.ca_compromise: RevocationReason.CA_COMPROMISE,
    x509.ReasonFlags.affiliation_changed: RevocationReason.AFFILIATION_CHANGED,
    x509.ReasonFlags.superseded: RevocationReason.SUPERSEDED,
    x509.ReasonFlags.cessation_of_operation: RevocationReason.CESSATION_OF_OPERATION,
    x509.ReasonFlags.certificate_hold: RevocationReason.CERTIFICATE_HOLD,
    x509.ReasonFlags.remove_from_crl: RevocationReason.REMOVE_FROM_CRL,
    x509.ReasonFlags.privilege_withdrawn: RevocationReason.PRIVILEGE_WITHDRAWN,
    x509.ReasonFlags.aa_compromise: RevocationReason.AA_COMPROMISE,
}


def reason_from_flag(flag: Optional[x509.ReasonFlags]) -> Optional[RevocationReason]:
    """Convert a cryptography ReasonFlags value to a RevocationReason."""
    if flag is None:
        return None
    return _REASON_FLAGS.get(flag, RevocationReason.UNSPECIFIED)


def revocation_reason_phrase(reason: Union[RevocationReason, int, None]) -> str:
    """
    Render a revocation reason as its English phrase.

    Unknown codes and missing reasons render as "Unspecified reason".
    """
    if reason is None:
        return _REASON_PHRASES[RevocationReason.UNSPECIFIED]
    try:
        reason = RevocationReason(reason)
    except ValueError:
        return _REASON_PHRASES[RevocationReason.UNSPECIFIED]
    return _REASON_PHRASES[reason]


@dataclass
class CertificateInfo:
    """Information about a single certificate."""

    subject: str
    issuer: str
    serial_number: int
    not_before: datetime
    not_after: datetime
    crl_distribution_points: List[str]  # URLs
    ocsp_responder_urls: List[str]  # AIA OCSP URLs
    ca_issuers_urls: List[str]  # AIA CA Issuers URLs
    fingerprint_sha256: str


@dataclass(frozen=True)
class OCSPResult:
    """Result of an OCSP status check."""

    serial_number: int
    status: OCSPStatus
    produced_at: datetime
    this_update: datetime
    next_update: Optional[datetime] = None
    revocation_reason: Optional[RevocationReason] = None  # Only set when REVOKED
    revocation_time: Optional[datetime] = None
    responder_url: Optional[str] = None


@dataclass(frozen=True)
class RevokedEntry:
    """A revoked certificate entry from a CRL."""

    serial_number: int
    revocation_time: datetime
    reason: Optional[RevocationReason] = None


@dataclass(frozen=True)
class CRLResult:
    """Result of a CRL status check."""

    serial_number: int
    status: CRLStatus
    entry: Optional[RevokedEntry] = None  # Only set when REVOKED
    crl_url: Optional[str] = None
    crl_issuer: Optional[str] = None
    this_update: Optional[datetime] = None
    next_update: Optional[datetime] = None
