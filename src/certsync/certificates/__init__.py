"""Certificate snapshots, slot naming, comparison, and the local store."""
from __future__ import annotations

from certsync.certificates.comparator import (
    CertificateInventoryComparator,
    DecisionReason,
    RotationAction,
    RotationDecision,
)
from certsync.certificates.local_store import FilesystemCertificateSource
from certsync.certificates.naming import SlotName, compose
from certsync.certificates.record import CertificateRecord

__all__ = [
    "CertificateInventoryComparator",
    "CertificateRecord",
    "DecisionReason",
    "FilesystemCertificateSource",
    "RotationAction",
    "RotationDecision",
    "SlotName",
    "compose",
]
