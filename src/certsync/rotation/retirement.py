"""Retirement gate — delete an old certificate only when provably unused."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from certsync.remote.client import RemoteApplianceClient
from certsync.rotation.resolver import ReferenceResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetirementVerdict:
    """Whether an identifier may be deleted.

    Parameters
    ----------
    permitted:
        True only if deletion is allowed.
    remaining:
        Re-verified live reference count.
    reason:
        Human-readable explanation.
    """

    permitted: bool
    remaining: int
    reason: str


class RetirementGate:
    """Guards deletion of a rotated-out certificate.

    An identifier is deleted only if this run rebound at least one of its
    references and a fresh usage query then reports none left. An
    identifier the engine did not empty itself is never deleted, since a
    zero count might be a blind spot of the usage endpoint.
    """

    def __init__(
        self,
        client: RemoteApplianceClient,
        resolver: ReferenceResolver,
        scope: str | None = None,
    ) -> None:
        self._client = client
        self._resolver = resolver
        self._scope = scope

    def evaluate(self, old_identifier: str, successful_rebinds: int) -> RetirementVerdict:
        """Decide whether *old_identifier* may be deleted.

        The live reference count is always re-queried and recorded, even
        when nothing was rebound.
        """
        remaining = self._resolver.count(old_identifier)
        if successful_rebinds <= 0:
            return RetirementVerdict(
                permitted=False,
                remaining=remaining,
                reason="no reference was rebound by this run",
            )
        if remaining != 0:
            return RetirementVerdict(
                permitted=False,
                remaining=remaining,
                reason=f"{remaining} reference(s) remain",
            )
        return RetirementVerdict(permitted=True, remaining=0, reason="no references remain")

    def retire(self, old_identifier: str, successful_rebinds: int) -> RetirementVerdict:
        """Evaluate and, when permitted, delete *old_identifier*.

        Raises
        ------
        RemoteRequestError
            If the deletion itself fails after a zero-reference confirmation.
        """
        verdict = self.evaluate(old_identifier, successful_rebinds)
        if verdict.permitted:
            self._client.delete_certificate(self._scope, old_identifier)
            logger.info("Cert %r has no references and was deleted.", old_identifier)
        return verdict
