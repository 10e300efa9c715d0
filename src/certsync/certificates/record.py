"""CertificateRecord — read-only snapshot of one certificate.

Records are built from parsed X.509 certificates, either from the local
store or from the PEM block the remote appliance embeds in a certificate
object. They are never mutated and never cached across runs.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass

from cryptography import x509
from cryptography.x509.oid import ExtensionOID, NameOID

from certsync.errors import ParseError


def _first_attribute(name: x509.Name, oid: x509.ObjectIdentifier) -> str:
    attrs = name.get_attributes_for_oid(oid)
    return str(attrs[0].value) if attrs else ""


def dns_names(cert: x509.Certificate) -> list[str]:
    """Return the DNS names of the Subject Alternative Name extension, if any.

    Raises
    ------
    ParseError
        If the certificate carries malformed or duplicate extensions.
    """
    try:
        ext = cert.extensions.get_extension_for_oid(ExtensionOID.SUBJECT_ALTERNATIVE_NAME)
    except x509.ExtensionNotFound:
        return []
    except (ValueError, x509.DuplicateExtension) as exc:
        raise ParseError(f"malformed extensions ({exc})") from exc
    return list(ext.value.get_values_for_type(x509.DNSName))


@dataclass(frozen=True)
class CertificateRecord:
    """Snapshot of a certificate's identity and validity.

    Parameters
    ----------
    identifier:
        Slot identifier on the remote appliance, or the bundle path for a
        certificate taken from the local store.
    subject_cn:
        Primary DNS name of the subject, falling back to its common name.
    issuer_cn:
        Issuer common name (empty if absent).
    issuer_o:
        Issuer organization (empty if absent).
    expiry:
        Certificate ``notAfter`` as a timezone-aware UTC datetime.
    """

    identifier: str
    subject_cn: str
    issuer_cn: str
    issuer_o: str
    expiry: datetime.datetime

    @classmethod
    def from_x509(cls, identifier: str, cert: x509.Certificate) -> "CertificateRecord":
        """Build a record from a parsed certificate.

        Raises
        ------
        ParseError
            If the certificate's names or extensions do not decode.
        """
        names = dns_names(cert)
        try:
            subject_cn = names[0] if names else _first_attribute(cert.subject, NameOID.COMMON_NAME)
            return cls(
                identifier=identifier,
                subject_cn=subject_cn or cert.subject.rfc4514_string(),
                issuer_cn=_first_attribute(cert.issuer, NameOID.COMMON_NAME),
                issuer_o=_first_attribute(cert.issuer, NameOID.ORGANIZATION_NAME),
                expiry=cert.not_valid_after_utc,
            )
        except ValueError as exc:
            raise ParseError(f"malformed certificate names ({exc})") from exc

    def is_expired(self, now: datetime.datetime | None = None) -> bool:
        """Return True if *now* (default: current UTC time) is past the expiry."""
        reference = now or datetime.datetime.now(datetime.timezone.utc)
        return reference > self.expiry
