"""Certificate revocation status checks via OCSP and CRL."""

__version__ = "0.1.0"
