"""Inventory comparison — decide whether a certificate family must rotate.

The comparator looks at every remote certificate belonging to a family,
takes the one with the latest expiry as the family's current slot, and
compares it with the newest local candidate. Rotation only happens when
the local certificate strictly outlives the remote one, or when forced.
"""
from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from enum import Enum

from certsync.certificates.naming import SlotName
from certsync.certificates.record import CertificateRecord

logger = logging.getLogger(__name__)


class RotationAction(str, Enum):
    """What the orchestrator should do with a family."""

    SKIP = "skip"
    ROTATE = "rotate"


class DecisionReason(str, Enum):
    """Why a decision was taken."""

    NOT_INVENTORIED = "not_inventoried"
    NO_LOCAL_CANDIDATE = "no_local_candidate"
    LOCAL_EXPIRED = "local_expired"
    NOT_NEWER = "not_newer"
    NEWER_LOCAL = "newer_local"
    FORCED = "forced"
    SLOT_TAKEN = "slot_taken"


@dataclass(frozen=True)
class RotationDecision:
    """Outcome of one comparison, consumed immediately by the orchestrator.

    Parameters
    ----------
    family:
        The certificate family evaluated.
    old_identifier:
        Remote identifier of the current slot, or None if not inventoried.
    new_identifier:
        Identifier the replacement would be imported under.
    action:
        SKIP or ROTATE.
    reason:
        Why the action was chosen.
    """

    family: str
    old_identifier: str | None
    new_identifier: str
    action: RotationAction
    reason: DecisionReason

    @property
    def manual_import_required(self) -> bool:
        """True when the family has never been imported on the remote side."""
        return self.reason is DecisionReason.NOT_INVENTORIED

    @property
    def rotate(self) -> bool:
        return self.action is RotationAction.ROTATE


class CertificateInventoryComparator:
    """Compares local and remote snapshots of a certificate family."""

    def select_current(
        self, family: str, remote_records: list[CertificateRecord]
    ) -> CertificateRecord | None:
        """Return the family's remote record with the latest expiry, or None."""
        matches = [r for r in remote_records if SlotName.matches(r.identifier, family)]
        if not matches:
            return None
        return max(matches, key=lambda r: r.expiry)

    def decide(
        self,
        family: str,
        remote_records: list[CertificateRecord],
        local: CertificateRecord | None,
        *,
        force: bool = False,
        today: datetime.date | None = None,
        now: datetime.datetime | None = None,
    ) -> RotationDecision:
        """Decide whether *family* should rotate to the *local* certificate.

        Parameters
        ----------
        family:
            Family name (without date suffix).
        remote_records:
            Remote certificate snapshot; records of other families are ignored.
        local:
            Newest local candidate, or None if the local store had none.
        force:
            Rotate even if the local certificate is not newer.
        today:
            Date used for the replacement identifier (default: today).
        now:
            Reference time for the expiry check (default: current UTC time).

        Returns
        -------
        RotationDecision
        """
        reference = now or datetime.datetime.now(datetime.timezone.utc)
        new_identifier = SlotName(family, today or datetime.date.today()).compose()
        current = self.select_current(family, remote_records)

        def skip(reason: DecisionReason) -> RotationDecision:
            return RotationDecision(
                family=family,
                old_identifier=current.identifier if current else None,
                new_identifier=new_identifier,
                action=RotationAction.SKIP,
                reason=reason,
            )

        if current is None:
            logger.info(
                "[%s] Not inventoried on the remote appliance; manual import required, skipping.",
                family,
            )
            return skip(DecisionReason.NOT_INVENTORIED)

        if local is None:
            logger.info("[%s] No matching certificate in the local store.", family)
            return skip(DecisionReason.NO_LOCAL_CANDIDATE)

        if local.is_expired(reference):
            logger.warning(
                "[%s] Newest local certificate expired on %s; skipping.",
                family,
                local.expiry.date().isoformat(),
            )
            return skip(DecisionReason.LOCAL_EXPIRED)

        newer = local.expiry > current.expiry
        logger.info(
            "[%s] Local newest: %s, remote newest: %s (%s). Import? %s",
            family,
            local.expiry.date().isoformat(),
            current.expiry.date().isoformat(),
            current.identifier,
            newer or force,
        )
        if not newer and not force:
            return skip(DecisionReason.NOT_NEWER)

        if any(r.identifier.casefold() == new_identifier.casefold() for r in remote_records):
            logger.warning(
                "[%s] Slot %r already exists on the remote appliance; rotate again tomorrow.",
                family,
                new_identifier,
            )
            return skip(DecisionReason.SLOT_TAKEN)

        return RotationDecision(
            family=family,
            old_identifier=current.identifier,
            new_identifier=new_identifier,
            action=RotationAction.ROTATE,
            reason=DecisionReason.NEWER_LOCAL if newer else DecisionReason.FORCED,
        )
