"""Local certificate source — filesystem-backed store of PEM bundles.

A store is a directory of PEM files. Each usable bundle holds one
certificate chain and the unencrypted private key of its leaf; bundles
without a key are not exportable and are ignored. A store selector picks
a sub-directory of the configured root.

The source finds the newest certificate matching a subject (and
optionally issuer) filter and exports it as a password-protected PKCS#12
archive for import on the remote appliance.
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from certsync.certificates.record import CertificateRecord, dns_names
from certsync.errors import LocalStoreError, ParseError

logger = logging.getLogger(__name__)

BUNDLE_SUFFIXES = frozenset({".pem", ".crt", ".cer"})


@dataclass(frozen=True)
class _Bundle:
    """A parsed PEM bundle: leaf, its key, and the remaining chain."""

    path: Path
    leaf: x509.Certificate
    key: pkcs12.PKCS12PrivateKeyTypes
    chain: list[x509.Certificate]


def _public_bytes(key: object) -> bytes:
    return key.public_bytes(  # type: ignore[attr-defined]
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def is_self_signed(cert: x509.Certificate) -> bool:
    """Return True if the certificate names itself as issuer (a root)."""
    return cert.issuer == cert.subject


def load_bundle(path: Path) -> _Bundle | None:
    """Parse a PEM bundle.

    Returns None if the bundle carries no private key.

    Raises
    ------
    LocalStoreError
        If the file cannot be read.
    ParseError
        If the file holds no certificate, an unusable key, or no
        certificate matching the key.
    """
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise LocalStoreError(f"Cannot read {path}: {exc}") from exc

    try:
        certs = x509.load_pem_x509_certificates(data)
    except ValueError as exc:
        raise ParseError(f"{path.name}: no PEM certificate ({exc})") from exc

    if b"PRIVATE KEY-----" not in data:
        return None

    try:
        key = serialization.load_pem_private_key(data, password=None)
    except (ValueError, TypeError) as exc:
        raise ParseError(f"{path.name}: unusable private key ({exc})") from exc

    key_public = _public_bytes(key.public_key())
    leaf = next((c for c in certs if _public_bytes(c.public_key()) == key_public), None)
    if leaf is None:
        raise ParseError(f"{path.name}: no certificate matches the private key")

    chain = [c for c in certs if c is not leaf]
    return _Bundle(path=path, leaf=leaf, key=key, chain=chain)  # type: ignore[arg-type]


def _subject_matches(cert: x509.Certificate, subject_filter: str) -> bool:
    wanted = subject_filter.casefold()
    if wanted in cert.subject.rfc4514_string().casefold():
        return True
    return any(wanted in name.casefold() for name in dns_names(cert))


def _issuer_matches(record: CertificateRecord, cert: x509.Certificate, issuer_filter: str) -> bool:
    wanted = issuer_filter.casefold()
    candidates = (record.issuer_cn, record.issuer_o, cert.issuer.rfc4514_string())
    return any(wanted in c.casefold() for c in candidates if c)


class FilesystemCertificateSource:
    """Finds and exports certificates kept as PEM bundles on disk.

    Parameters
    ----------
    store_root:
        Directory against which relative store selectors are resolved.
    """

    def __init__(self, store_root: Path) -> None:
        self._store_root = store_root

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def store_path(self, store: str) -> Path:
        """Resolve a store selector to a directory path."""
        if not store or store == ".":
            return self._store_root
        selector = Path(store)
        return selector if selector.is_absolute() else self._store_root / selector

    def find_newest_certificate(
        self,
        store: str,
        subject_filter: str,
        issuer_filter: str | None = None,
    ) -> CertificateRecord | None:
        """Return the newest key-bearing certificate matching the filters.

        Parameters
        ----------
        store:
            Store selector (sub-directory of the store root).
        subject_filter:
            Case-insensitive substring of the subject or of a SAN DNS name.
        issuer_filter:
            Optional case-insensitive substring of the issuer CN, O, or DN.

        Returns
        -------
        CertificateRecord | None
            The match with the latest expiry; its identifier is the bundle path.

        Raises
        ------
        LocalStoreError
            If the store directory does not exist or cannot be listed.
        """
        directory = self.store_path(store)
        if not directory.is_dir():
            raise LocalStoreError(f"Certificate store {str(directory)!r} does not exist")

        try:
            paths = sorted(p for p in directory.iterdir() if p.suffix.lower() in BUNDLE_SUFFIXES)
        except OSError as exc:
            raise LocalStoreError(f"Cannot list certificate store {str(directory)!r}: {exc}") from exc

        newest: CertificateRecord | None = None
        for path in paths:
            try:
                bundle = load_bundle(path)
                if bundle is None:
                    continue
                record = CertificateRecord.from_x509(str(path), bundle.leaf)
                if not _subject_matches(bundle.leaf, subject_filter):
                    continue
            except ParseError as exc:
                logger.info("Skipping local bundle %s: %s", path.name, exc)
                continue

            if issuer_filter and not _issuer_matches(record, bundle.leaf, issuer_filter):
                continue
            if newest is None or record.expiry > newest.expiry:
                newest = record

        return newest

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_archive(self, record: CertificateRecord) -> tuple[bytes, str]:
        """Export *record* as a password-protected PKCS#12 archive.

        The archive holds the leaf, its private key, and the intermediate
        chain. Self-signed roots are left out; the appliance trusts its own.

        Returns
        -------
        tuple[bytes, str]
            The DER-encoded archive and its random password.

        Raises
        ------
        LocalStoreError
            If the bundle is gone or no longer carries a private key.
        """
        try:
            bundle = load_bundle(Path(record.identifier))
        except ParseError as exc:
            raise LocalStoreError(f"Cannot export {record.identifier}: {exc}") from exc
        if bundle is None:
            raise LocalStoreError(f"Cannot export {record.identifier}: no private key")

        intermediates = [c for c in bundle.chain if not is_self_signed(c)]
        password = secrets.token_hex(16)
        archive = pkcs12.serialize_key_and_certificates(
            name=record.subject_cn.encode("utf-8") or None,
            key=bundle.key,
            cert=bundle.leaf,
            cas=intermediates or None,
            encryption_algorithm=serialization.BestAvailableEncryption(password.encode("ascii")),
        )
        return archive, password
