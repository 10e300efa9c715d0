"""Rotation engine: reference resolution, rebinding, retirement, orchestration."""
from __future__ import annotations

from certsync.rotation.orchestrator import FamilyOutcome, RotationOrchestrator, RotationState
from certsync.rotation.rebinder import ReferenceRebinder
from certsync.rotation.resolver import ReferenceResolver, UsageReference
from certsync.rotation.retirement import RetirementGate, RetirementVerdict

__all__ = [
    "FamilyOutcome",
    "ReferenceRebinder",
    "ReferenceResolver",
    "RetirementGate",
    "RetirementVerdict",
    "RotationOrchestrator",
    "RotationState",
    "UsageReference",
]
