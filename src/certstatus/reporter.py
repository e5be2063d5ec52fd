"""Report generation (text and JSON)."""

import json
from dataclasses import asdict
from datetime import datetime
from typing import Any, Optional, TextIO, Union

from certstatus.models import CRLResult, CRLStatus, OCSPResult, OCSPStatus, revocation_reason_phrase

# Rendering of a missing timestamp (nextUpdate is optional in OCSP)
ZERO_TIMESTAMP = "0001-01-01 00:00:00 +0000 UTC"


def format_timestamp(value: Optional[datetime]) -> str:
    """
    Format a UTC timestamp as "YYYY-MM-DD HH:MM:SS[.fraction] +0000 UTC".

    Fractional seconds are only shown when non-zero, without trailing zeros.
    """
    if value is None:
        return ZERO_TIMESTAMP

    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d} "
        f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    if value.microsecond:
        text += f".{value.microsecond:06d}".rstrip("0")
    return text + " +0000 UTC"


def format_ocsp_report(result: OCSPResult) -> str:
    """Render an OCSP result as fixed-field text."""
    lines = [
        f"Serial number: {result.serial_number}",
        "",
        f"Status: {result.status.value}",
        "",
        f"Produced at: {format_timestamp(result.produced_at)}",
        f"This update: {format_timestamp(result.this_update)}",
        f"Next update: {format_timestamp(result.next_update)}",
    ]
    if result.status == OCSPStatus.REVOKED:
        lines.append(f"Revocation reason: {revocation_reason_phrase(result.revocation_reason)}")
    return "\n".join(lines) + "\n"


def format_crl_report(result: CRLResult) -> str:
    """Render a CRL result as fixed-field text."""
    lines = [
        f"Serial number: {result.serial_number}",
        "",
        f"Status: {result.status.value}",
    ]
    if result.status == CRLStatus.REVOKED and result.entry is not None:
        lines.append("")
        lines.append(f"Revocation reason: {revocation_reason_phrase(result.entry.reason)}")
        lines.append(f"Revoked at: {format_timestamp(result.entry.revocation_time)}")
    return "\n".join(lines) + "\n"


def write_ocsp_report(result: OCSPResult, out: TextIO) -> None:
    out.write(format_ocsp_report(result))


def write_crl_report(result: CRLResult, out: TextIO) -> None:
    out.write(format_crl_report(result))


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def generate_json_report(result: Union[OCSPResult, CRLResult]) -> str:
    """
    Generate JSON report.

    Serial numbers are emitted as decimal strings since they may exceed
    the integer range of JSON consumers.
    """
    data = asdict(result)
    data["serial_number"] = str(result.serial_number)
    data["method"] = "ocsp" if isinstance(result, OCSPResult) else "crl"

    if isinstance(result, OCSPResult):
        data["revocation_reason_text"] = (
            revocation_reason_phrase(result.revocation_reason)
            if result.status == OCSPStatus.REVOKED
            else None
        )
    elif result.entry is not None:
        data["entry"]["serial_number"] = str(result.entry.serial_number)
        data["entry"]["reason_text"] = revocation_reason_phrase(result.entry.reason)

    return json.dumps(data, indent=2, default=_json_default)
