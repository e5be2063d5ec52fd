"""CLI entry point using Typer."""

import logging
import sys
from pathlib import Path
from typing import NoReturn, Optional, Tuple

import typer
from cryptography import x509

from certstatus.certificate import read_certificate, set_debug_warnings
from certstatus.chain import resolve_issuer
from certstatus.crl import check_crl
from certstatus.exceptions import CertStatusError
from certstatus.http_client import DEFAULT_MAX_CRL_BYTES, DEFAULT_TIMEOUT, HTTPFetcher, HttpxFetcher
from certstatus.ocsp import HASH_ALGORITHMS, check_ocsp
from certstatus.reporter import generate_json_report, write_crl_report, write_ocsp_report

app = typer.Typer(help="Check X.509 certificate revocation status via OCSP or CRL", no_args_is_help=True)

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s",
)

logger = logging.getLogger(__name__)


def _configure(verbose: bool, debug_warnings: bool) -> None:
    set_debug_warnings(debug_warnings)
    if verbose:
        logging.getLogger("certstatus").setLevel(logging.DEBUG)


def _fail(error: Exception) -> NoReturn:
    typer.echo(f"[error] {error}", err=True)
    raise typer.Exit(code=1)


def _load_certificate_and_issuer(path: Path, fetcher: HTTPFetcher) -> Tuple[x509.Certificate, x509.Certificate]:
    cert = read_certificate(path)
    logger.debug(f"Loaded certificate '{cert.subject.rfc4514_string()}' (serial {cert.serial_number})")
    issuer = resolve_issuer(cert, fetcher)
    return cert, issuer


@app.command()
def ocsp(
    path: Path = typer.Argument(..., help="Certificate file (PEM or DER)"),
    timeout: float = typer.Option(
        DEFAULT_TIMEOUT, "--timeout", "-t", envvar="CERTSTATUS_TIMEOUT", help="HTTP timeout in seconds"
    ),
    proxy: Optional[str] = typer.Option(
        None, "--proxy", envvar="CERTSTATUS_PROXY", help="Proxy URL (e.g., http://proxy:8080)"
    ),
    hash_name: str = typer.Option("sha1", "--hash", help="CertID hash algorithm (sha1 or sha256)"),
    json_output: bool = typer.Option(False, "--json", "-j", help="JSON output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    debug_warnings: bool = typer.Option(False, "--debug-warnings", help="Show cryptography deprecation warnings"),
):
    """
    Check certificate status with the first OCSP responder it advertises.
    """
    _configure(verbose, debug_warnings)

    algorithm = HASH_ALGORITHMS.get(hash_name.lower())
    if algorithm is None:
        raise typer.BadParameter(
            f"unsupported hash '{hash_name}' (choose from {', '.join(HASH_ALGORITHMS)})",
            param_hint="--hash",
        )

    try:
        with HttpxFetcher(timeout=timeout, proxy=proxy) as fetcher:
            cert, issuer = _load_certificate_and_issuer(path, fetcher)
            result = check_ocsp(cert, issuer, fetcher, hash_algorithm=algorithm())
    except CertStatusError as e:
        _fail(e)

    if json_output:
        typer.echo(generate_json_report(result))
    else:
        write_ocsp_report(result, sys.stdout)


@app.command()
def crl(
    path: Path = typer.Argument(..., help="Certificate file (PEM or DER)"),
    timeout: float = typer.Option(
        DEFAULT_TIMEOUT, "--timeout", "-t", envvar="CERTSTATUS_TIMEOUT", help="HTTP timeout in seconds"
    ),
    proxy: Optional[str] = typer.Option(
        None, "--proxy", envvar="CERTSTATUS_PROXY", help="Proxy URL (e.g., http://proxy:8080)"
    ),
    max_crl_bytes: int = typer.Option(
        DEFAULT_MAX_CRL_BYTES, "--max-crl-bytes", help="Maximum CRL size in bytes (default: 20 MB)"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="JSON output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    debug_warnings: bool = typer.Option(False, "--debug-warnings", help="Show cryptography deprecation warnings"),
):
    """
    Check certificate status against the CRL at its first distribution point.
    """
    _configure(verbose, debug_warnings)

    try:
        with HttpxFetcher(timeout=timeout, proxy=proxy) as fetcher:
            cert, issuer = _load_certificate_and_issuer(path, fetcher)
            result = check_crl(cert, fetcher, max_crl_bytes=max_crl_bytes)
    except CertStatusError as e:
        _fail(e)

    # The CRL signature is not verified; flag CRLs from a different CA
    if result.crl_issuer != issuer.subject.rfc4514_string():
        logger.warning(
            f"CRL issuer '{result.crl_issuer}' does not match certificate issuer '{issuer.subject.rfc4514_string()}'"
        )

    if json_output:
        typer.echo(generate_json_report(result))
    else:
        write_crl_report(result, sys.stdout)


if __name__ == "__main__":
    app()
