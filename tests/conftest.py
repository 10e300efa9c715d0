"""Shared fixtures: certificate factories and an in-memory appliance."""
from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import ExtensionOID, NameOID

from certsync.certificates.record import CertificateRecord
from certsync.errors import RemoteRequestError
from certsync.remote.models import UsageEntry


def utc(year: int, month: int, day: int) -> datetime.datetime:
    return datetime.datetime(year, month, day, tzinfo=datetime.timezone.utc)


# ---------------------------------------------------------------------------
# Certificate factories
# ---------------------------------------------------------------------------


@dataclass
class Issued:
    cert: x509.Certificate
    key: ec.EllipticCurvePrivateKey

    def cert_pem(self) -> bytes:
        return self.cert.public_bytes(serialization.Encoding.PEM)

    def key_pem(self) -> bytes:
        return self.key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )


def _name(cn: str, org: str | None = None) -> x509.Name:
    attrs = [x509.NameAttribute(NameOID.COMMON_NAME, cn)]
    if org:
        attrs.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, org))
    return x509.Name(attrs)


def issue(
    cn: str,
    not_after: datetime.datetime,
    issuer: Issued | None = None,
    org: str | None = None,
    ca: bool = False,
    dns: list[str] | None = None,
    malformed_san: bool = False,
) -> Issued:
    """Issue a certificate; self-signed when *issuer* is None.

    With *malformed_san* the SAN extension holds bytes that do not decode,
    so the certificate loads but its extensions fail on first access.
    """
    key = ec.generate_private_key(ec.SECP256R1())
    subject = _name(cn, org)
    not_before = min(not_after, datetime.datetime.now(datetime.timezone.utc)) - datetime.timedelta(days=30)
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer.cert.subject if issuer else subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
    )
    if dns:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(d) for d in dns]), critical=False
        )
    if malformed_san:
        builder = builder.add_extension(
            x509.UnrecognizedExtension(ExtensionOID.SUBJECT_ALTERNATIVE_NAME, b"\x30\x03\xff\xff\xff"),
            critical=False,
        )
    cert = builder.sign(issuer.key if issuer else key, hashes.SHA256())
    return Issued(cert=cert, key=key)


@dataclass
class Chain:
    root: Issued
    intermediate: Issued


@pytest.fixture(scope="session")
def chain() -> Chain:
    root = issue("Test Root CA", utc(2040, 1, 1), org="Test Trust", ca=True)
    intermediate = issue("Test Issuing CA", utc(2035, 1, 1), issuer=root, org="Test Trust", ca=True)
    return Chain(root=root, intermediate=intermediate)


@pytest.fixture()
def write_bundle(chain: Chain) -> Callable[..., Path]:
    """Write a PEM bundle (leaf, intermediate, root, key) and return its path."""

    def _write(
        directory: Path,
        filename: str,
        cn: str,
        not_after: datetime.datetime,
        with_key: bool = True,
        dns: list[str] | None = None,
        malformed_san: bool = False,
    ) -> Path:
        leaf = issue(cn, not_after, issuer=chain.intermediate, dns=dns, malformed_san=malformed_san)
        directory.mkdir(parents=True, exist_ok=True)
        data = leaf.cert_pem() + chain.intermediate.cert_pem() + chain.root.cert_pem()
        if with_key:
            data += leaf.key_pem()
        path = directory / filename
        path.write_bytes(data)
        return path

    return _write


# ---------------------------------------------------------------------------
# In-memory appliance
# ---------------------------------------------------------------------------


@dataclass
class FakeAppliance:
    """Stands in for RemoteApplianceClient, with a live usage graph.

    ``objects`` maps ``(path, location, key)`` to attribute dicts. Scalar
    attributes hold a name, list attributes hold ``[{"name": ...}]``.
    """

    certificates: dict[str, CertificateRecord] = field(default_factory=dict)
    objects: dict[tuple[str, str, str], dict[str, Any]] = field(default_factory=dict)
    fail_put: set[tuple[str, str, str]] = field(default_factory=set)
    fail_delete: bool = False
    imported: list[tuple[str, bytes, str]] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    puts: list[tuple[tuple[str, str, str], dict[str, Any]]] = field(default_factory=list)

    def add_certificate(self, identifier: str, expiry: datetime.datetime, subject: str = "www.example.net") -> None:
        self.certificates[identifier] = CertificateRecord(
            identifier=identifier,
            subject_cn=subject,
            issuer_cn="Test Issuing CA",
            issuer_o="Test Trust",
            expiry=expiry,
        )

    def list_certificates(self, scope, predicate=None) -> list[CertificateRecord]:
        return [r for n, r in self.certificates.items() if predicate is None or predicate(n)]

    def get_certificate_detail(self, identifier, scope):
        return self.certificates.get(identifier)

    def import_certificate(self, scope, identifier, archive, password) -> None:
        self.imported.append((identifier, archive, password))
        loaded = pkcs12.load_pkcs12(archive, password.encode("ascii"))
        assert loaded.cert is not None
        self.certificates[identifier] = CertificateRecord.from_x509(identifier, loaded.cert.certificate)

    def delete_certificate(self, scope, identifier) -> None:
        if self.fail_delete:
            raise RemoteRequestError(f"Delete cert {identifier!r} failed", status=500)
        self.deleted.append(identifier)
        self.certificates.pop(identifier, None)

    def query_usage(self, scope, object_type, identifier) -> list[UsageEntry]:
        entries: list[UsageEntry] = []
        for (path, location, key), attrs in self.objects.items():
            for attribute, value in attrs.items():
                if isinstance(value, list):
                    names = [m["name"].casefold() for m in value]
                    if identifier.casefold() in names:
                        entries.append(
                            UsageEntry(path=path, name=location, mkey=key, attribute=attribute, table_type="table")
                        )
                elif isinstance(value, str) and value.casefold() == identifier.casefold():
                    entries.append(UsageEntry(path=path, name=location, mkey=key, attribute=attribute))
        return entries

    def get_object(self, scope, path, location, key) -> dict[str, Any]:
        return {"name": key, **self.objects[(path, location, key)]}

    def put_object(self, scope, path, location, key, payload, action=None) -> None:
        target = (path, location, key)
        self.puts.append((target, payload))
        if target in self.fail_put:
            raise RemoteRequestError(action or "Write failed", status=500, body="internal error")
        for attribute, value in payload.items():
            if attribute == "name" or attribute.endswith("-mode"):
                continue
            self.objects[target][attribute] = value


@pytest.fixture()
def appliance() -> FakeAppliance:
    return FakeAppliance()
