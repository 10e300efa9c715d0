"""certsync — keep an appliance's certificates in sync with a local store.

Rotates certificate families on a remote appliance: imports a newer local
certificate under a dated slot, rebinds every configuration reference to
it, and deletes the old slot once it is verifiably unused.

Quick start
-----------
::

    from pathlib import Path

    from certsync import (
        FilesystemCertificateSource,
        RemoteApplianceClient,
        RotationOrchestrator,
        load_settings,
    )

    settings = load_settings(Path("certsync.ini"))
    client = RemoteApplianceClient(settings.remote)
    client.verify_auth()
    orchestrator = RotationOrchestrator(
        client,
        FilesystemCertificateSource(settings.local.store_root),
        scope=settings.remote.scope,
    )
    outcomes = orchestrator.run(settings.families)
"""
from __future__ import annotations

__version__: str = "0.1.0"

from certsync.certificates import (
    CertificateInventoryComparator,
    CertificateRecord,
    DecisionReason,
    FilesystemCertificateSource,
    RotationAction,
    RotationDecision,
    SlotName,
)
from certsync.config import FamilySettings, RemoteSettings, RunSettings, load_settings
from certsync.errors import (
    AuthError,
    CertSyncError,
    ConfigError,
    LocalStoreError,
    ParseError,
    RemoteRequestError,
)
from certsync.remote import RemoteApplianceClient
from certsync.rotation import (
    FamilyOutcome,
    ReferenceRebinder,
    ReferenceResolver,
    RetirementGate,
    RotationOrchestrator,
    RotationState,
    UsageReference,
)

__all__ = [
    "__version__",
    # certificates
    "CertificateInventoryComparator",
    "CertificateRecord",
    "DecisionReason",
    "FilesystemCertificateSource",
    "RotationAction",
    "RotationDecision",
    "SlotName",
    # config
    "FamilySettings",
    "RemoteSettings",
    "RunSettings",
    "load_settings",
    # errors
    "AuthError",
    "CertSyncError",
    "ConfigError",
    "LocalStoreError",
    "ParseError",
    "RemoteRequestError",
    # remote
    "RemoteApplianceClient",
    # rotation
    "FamilyOutcome",
    "ReferenceRebinder",
    "ReferenceResolver",
    "RetirementGate",
    "RotationOrchestrator",
    "RotationState",
    "UsageReference",
]
