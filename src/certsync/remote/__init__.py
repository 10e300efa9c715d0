"""Remote appliance REST client and response decoding."""
from __future__ import annotations

from certsync.remote.client import RemoteApplianceClient
from certsync.remote.models import Results, ResultsKind, UsageEntry

__all__ = [
    "RemoteApplianceClient",
    "Results",
    "ResultsKind",
    "UsageEntry",
]
