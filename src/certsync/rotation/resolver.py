"""Reference resolution — who on the appliance uses a certificate.

The appliance exposes a usage-graph endpoint that lists the configuration
objects currently referencing an object. Each complete entry becomes a
:class:`UsageReference`; incomplete entries are dropped because remote
data can be partial.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from certsync.remote.client import RemoteApplianceClient

logger = logging.getLogger(__name__)

CERTIFICATE_OBJECT_TYPE = ("vpn.certificate", "local")


@dataclass(frozen=True)
class UsageReference:
    """One configuration attribute naming a certificate identifier.

    Parameters
    ----------
    path:
        Configuration path of the referencing object (e.g. ``firewall``).
    location:
        Table name under the path (e.g. ``ssl-ssh-profile``).
    object_key:
        Key of the referencing object within the table.
    attribute:
        Attribute holding the certificate identifier.
    multi_valued:
        True if the attribute is a member list rather than a scalar.
    """

    path: str
    location: str
    object_key: str
    attribute: str
    multi_valued: bool = False

    def describe(self) -> str:
        return f"{self.path}/{self.location}/{self.object_key}:{self.attribute}"


class ReferenceResolver:
    """Queries the remote usage graph for references to a certificate.

    Parameters
    ----------
    client:
        Remote appliance client.
    scope:
        Scope qualifier (vdom) the queries run in.
    object_type:
        ``(path, name)`` of the certificate table on the appliance.
    """

    def __init__(
        self,
        client: RemoteApplianceClient,
        scope: str | None = None,
        object_type: tuple[str, str] = CERTIFICATE_OBJECT_TYPE,
    ) -> None:
        self._client = client
        self._scope = scope
        self._object_type = object_type

    def resolve(self, identifier: str) -> list[UsageReference]:
        """Return the references to *identifier* in remote response order.

        Duplicates are kept; rebinding is safe to repeat.

        Raises
        ------
        RemoteRequestError
            If the usage query fails. A failed query is never reported as
            "no references".
        """
        references: list[UsageReference] = []
        for entry in self._client.query_usage(self._scope, self._object_type, identifier):
            if not entry.is_complete():
                logger.debug("Dropping incomplete usage entry for %r: %s", identifier, entry)
                continue
            references.append(
                UsageReference(
                    path=entry.path.strip(),  # type: ignore[union-attr]
                    location=entry.name.strip(),  # type: ignore[union-attr]
                    object_key=entry.mkey,  # type: ignore[arg-type]
                    attribute=entry.effective_attribute,
                    multi_valued=entry.multi_valued,
                )
            )
        return references

    def count(self, identifier: str) -> int:
        """Return the number of live references to *identifier*."""
        return len(self.resolve(identifier))
