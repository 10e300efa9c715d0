"""RotationOrchestrator — per-family rotation state machine.

Each configured family runs to completion before the next starts::

    IDLE -> EVALUATED -> IMPORTED -> REBOUND -> RETIRED
              |             |           |
              v             v           +----> (old identifier kept)
           SKIPPED        FAILED

A family that fails never stops the run: errors are caught at the family
boundary, logged with the family name, and the next family is processed.
Within the rebind phase a failing reference is logged and the remaining
references are still processed.
"""
from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from certsync.certificates.comparator import (
    CertificateInventoryComparator,
    RotationDecision,
)
from certsync.certificates.local_store import FilesystemCertificateSource
from certsync.certificates.naming import SlotName
from certsync.certificates.record import CertificateRecord
from certsync.config import FamilySettings
from certsync.errors import CertSyncError
from certsync.remote.client import RemoteApplianceClient
from certsync.rotation.rebinder import ReferenceRebinder
from certsync.rotation.resolver import ReferenceResolver
from certsync.rotation.retirement import RetirementGate

logger = logging.getLogger(__name__)


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class RotationState(str, Enum):
    """States of one family's rotation."""

    IDLE = "idle"
    EVALUATED = "evaluated"
    IMPORTED = "imported"
    REBOUND = "rebound"
    RETIRED = "retired"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class FamilyOutcome:
    """What happened to one family during a run.

    ``state`` is the last state reached. A family that rotated but kept
    its old identifier ends in REBOUND with ``retired`` False.
    """

    family: str
    state: RotationState = RotationState.IDLE
    decision: RotationDecision | None = None
    new_identifier: str | None = None
    rebound: int = 0
    rebind_failures: int = 0
    remaining_references: int | None = None
    retired: bool = False
    error: str = ""

    @property
    def old_identifier(self) -> str | None:
        return self.decision.old_identifier if self.decision else None


class RotationOrchestrator:
    """Drives certificate rotation for every configured family.

    Parameters
    ----------
    client:
        Remote appliance client.
    source:
        Local certificate source.
    scope:
        Scope qualifier (vdom) on the appliance.
    comparator:
        Inventory comparator (a default instance if omitted).
    clock:
        Returns the current UTC time; the replacement identifier uses its date.
    """

    def __init__(
        self,
        client: RemoteApplianceClient,
        source: FilesystemCertificateSource,
        scope: str | None = None,
        comparator: CertificateInventoryComparator | None = None,
        clock: Callable[[], datetime.datetime] = _utcnow,
    ) -> None:
        self._client = client
        self._source = source
        self._scope = scope
        self._comparator = comparator or CertificateInventoryComparator()
        self._clock = clock
        self._resolver = ReferenceResolver(client, scope)
        self._rebinder = ReferenceRebinder(client, scope)
        self._gate = RetirementGate(client, self._resolver, scope)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def run(self, families: list[FamilySettings], force: bool = False) -> list[FamilyOutcome]:
        """Process every family in order and return their outcomes."""
        outcomes: list[FamilyOutcome] = []
        for settings in families:
            outcomes.append(self.process_family(settings, force=force))
        return outcomes

    def process_family(self, settings: FamilySettings, force: bool = False) -> FamilyOutcome:
        """Run one family to a terminal state. Never raises for engine errors."""
        family = SlotName.parse(settings.family).family
        outcome = FamilyOutcome(family=family)
        try:
            self._rotate(settings, family, outcome, force or settings.force)
        except CertSyncError as exc:
            outcome.state = RotationState.FAILED
            outcome.error = str(exc)
            logger.error("[%s] %s", family, exc)
        except Exception as exc:  # noqa: BLE001 - family boundary
            outcome.state = RotationState.FAILED
            outcome.error = str(exc)
            logger.exception("[%s] Unexpected error: %s", family, exc)
        return outcome

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _rotate(
        self,
        settings: FamilySettings,
        family: str,
        outcome: FamilyOutcome,
        force: bool,
    ) -> None:
        # IDLE -> EVALUATED
        decision, local = self._evaluate(settings, family, force)
        outcome.decision = decision
        outcome.state = RotationState.EVALUATED
        if not decision.rotate:
            outcome.state = RotationState.SKIPPED
            return
        old_identifier = decision.old_identifier
        if old_identifier is None or local is None:
            raise CertSyncError("Rotate decision without a remote slot or local certificate")

        # EVALUATED -> IMPORTED
        archive, password = self._source.export_archive(local)
        self._client.import_certificate(self._scope, decision.new_identifier, archive, password)
        logger.info("[%s] Imported into slot %r", family, decision.new_identifier)
        outcome.new_identifier = decision.new_identifier
        outcome.state = RotationState.IMPORTED

        # IMPORTED -> REBOUND
        self._rebind_all(family, outcome, old_identifier, decision.new_identifier)
        outcome.state = RotationState.REBOUND

        # REBOUND -> RETIRED (or old identifier kept)
        verdict = self._gate.retire(old_identifier, outcome.rebound)
        outcome.remaining_references = verdict.remaining
        if verdict.permitted:
            outcome.retired = True
            outcome.state = RotationState.RETIRED
        elif outcome.rebound == 0:
            logger.info(
                "[%s] Found no rebound references for cert %r therefore it was preserved.",
                family,
                old_identifier,
            )
        else:
            logger.info(
                "[%s] Cert %r still has %s reference(s) and was kept.",
                family,
                old_identifier,
                verdict.remaining,
            )

    def _evaluate(
        self, settings: FamilySettings, family: str, force: bool
    ) -> tuple[RotationDecision, CertificateRecord | None]:
        remote_records = self._client.list_certificates(
            self._scope, predicate=lambda name: SlotName.matches(name, family)
        )
        now = self._clock()
        current = self._comparator.select_current(family, remote_records)

        local = None
        if current is not None:
            subject = settings.subject or current.subject_cn
            issuer = settings.issuer or (current.issuer_o or None)
            local = self._source.find_newest_certificate(settings.store, subject, issuer)
            if local is not None:
                logger.info(
                    "[%s] Local newest: %s / %s",
                    family,
                    local.expiry.date().isoformat(),
                    local.identifier,
                )

        decision = self._comparator.decide(
            family,
            remote_records,
            local,
            force=force,
            today=now.date(),
            now=now,
        )
        return decision, local

    def _rebind_all(
        self,
        family: str,
        outcome: FamilyOutcome,
        old_identifier: str,
        new_identifier: str,
    ) -> None:
        references = self._resolver.resolve(old_identifier)
        for reference in references:
            try:
                if self._rebinder.rebind(reference, old_identifier, new_identifier):
                    outcome.rebound += 1
            except CertSyncError as exc:
                outcome.rebind_failures += 1
                logger.error("[%s] Rebind failed: %s", family, exc)
            except Exception as exc:  # noqa: BLE001 - reference boundary
                outcome.rebind_failures += 1
                logger.exception("[%s] Rebind failed for %s: %s", family, reference.describe(), exc)
        if outcome.rebound:
            logger.info(
                "[%s] Rebound %s object(s) from %r -> %r",
                family,
                outcome.rebound,
                old_identifier,
                new_identifier,
            )
