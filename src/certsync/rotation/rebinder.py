"""Reference rebinding — point one configuration attribute at a new certificate.

Scalar attributes are overwritten with the new identifier. Member-list
attributes are rewritten as a full replacement list: the old and new
identifiers are removed (ignoring case), the new one appended, and the
list submitted with ``<attribute>-mode: replace`` so the appliance does
not merge it with a stale copy. Applying the same rebind twice is a no-op.
"""
from __future__ import annotations

import logging
from typing import Any

from certsync.remote.client import RemoteApplianceClient
from certsync.rotation.resolver import UsageReference

logger = logging.getLogger(__name__)


def member_names(snapshot: dict[str, Any], attribute: str) -> list[str]:
    """Return the non-blank ``name`` members of a list attribute."""
    value = snapshot.get(attribute)
    if not isinstance(value, list):
        return []
    names: list[str] = []
    for item in value:
        name = item.get("name") if isinstance(item, dict) else None
        if isinstance(name, str) and name.strip():
            names.append(name)
    return names


def replace_member(members: list[str], old_identifier: str, new_identifier: str) -> list[str]:
    """Return *members* with *old_identifier* swapped for *new_identifier*.

    The new identifier appears exactly once, at the end.
    """
    drop = {old_identifier.casefold(), new_identifier.casefold()}
    kept = [m for m in members if m.casefold() not in drop]
    kept.append(new_identifier)
    return kept


class ReferenceRebinder:
    """Rewrites usage references on the remote appliance.

    Parameters
    ----------
    client:
        Remote appliance client.
    scope:
        Scope qualifier (vdom) the objects live in.
    """

    def __init__(self, client: RemoteApplianceClient, scope: str | None = None) -> None:
        self._client = client
        self._scope = scope

    def build_payload(
        self,
        reference: UsageReference,
        snapshot: dict[str, Any],
        old_identifier: str,
        new_identifier: str,
    ) -> dict[str, Any]:
        """Return the write payload for *reference*."""
        payload: dict[str, Any] = {"name": reference.object_key}
        attribute = reference.attribute
        if reference.multi_valued:
            members = replace_member(member_names(snapshot, attribute), old_identifier, new_identifier)
            payload[attribute] = [{"name": m} for m in members]
            payload[f"{attribute}-mode"] = "replace"
        else:
            payload[attribute] = new_identifier
        return payload

    def rebind(self, reference: UsageReference, old_identifier: str, new_identifier: str) -> bool:
        """Point *reference* at *new_identifier*.

        Returns
        -------
        bool
            True if the write was applied, False if the reference has no
            attribute or the new identifier is blank (nothing is sent).

        Raises
        ------
        RemoteRequestError
            If the read or the single write call does not succeed.
        """
        if not reference.attribute.strip() or not new_identifier.strip():
            return False

        snapshot = self._client.get_object(
            self._scope, reference.path, reference.location, reference.object_key
        )
        payload = self.build_payload(reference, snapshot, old_identifier, new_identifier)
        self._client.put_object(
            self._scope,
            reference.path,
            reference.location,
            reference.object_key,
            payload,
            action=f"Rebind {reference.attribute!r} in {reference.describe()} failed",
        )
        logger.info("Rebound %s -> %s", reference.describe(), new_identifier)
        return True
