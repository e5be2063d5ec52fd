"""Exceptions raised by revocation checks."""

from typing import Optional


class CertStatusError(Exception):
    """Base class for all certstatus errors."""


class CertificateLoadError(CertStatusError):
    """Certificate could not be loaded."""


class NotACertificate(CertificateLoadError):
    """PEM input carries a block that is not a certificate."""

    def __init__(self, label: Optional[str] = None):
        self.label = label
        message = "no certificate"
        if label:
            message = f"no certificate (found PEM block '{label}')"
        super().__init__(message)


class MalformedCertificate(CertificateLoadError):
    """Input could not be parsed as an X.509 certificate."""


class CertificateReadError(CertificateLoadError):
    """Certificate file could not be read."""


class IssuerResolutionError(CertStatusError):
    """Issuer certificate could not be resolved."""


class NoIssuerURLs(IssuerResolutionError):
    def __init__(self):
        super().__init__("no issuer certificate URLs found")


class NoReachableIssuer(IssuerResolutionError):
    def __init__(self, urls=None):
        self.urls = list(urls or [])
        super().__init__("no issuer certificate")


class NoOCSPServers(CertStatusError):
    def __init__(self):
        super().__init__("no OCSP servers found")


class NoCRLDistributionPoints(CertStatusError):
    def __init__(self):
        super().__init__("no CRL distribution points found")


class TransportFailure(CertStatusError):
    """HTTP fetch failed: connection error, non-success status or body read error."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"failed to get resource {url}: {reason}")


class MalformedResponse(CertStatusError):
    """OCSP response is structurally invalid, unsuccessful or improperly signed."""


class MalformedCRL(CertStatusError):
    """CRL body could not be parsed."""


class InvalidProxyURL(CertStatusError):
    def __init__(self, proxy: str, reason: str):
        self.proxy = proxy
        super().__init__(f"invalid proxy URL '{proxy}': {reason}")
