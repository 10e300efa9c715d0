"""Error taxonomy for certsync.

Every error raised by the engine derives from :class:`CertSyncError` so
callers can distinguish engine failures from programming errors.
"""
from __future__ import annotations


class CertSyncError(Exception):
    """Base class for all certsync errors."""


class ConfigError(CertSyncError):
    """Raised when a required setting is missing or invalid. Fatal at startup."""


class AuthError(CertSyncError):
    """Raised when the remote appliance rejects the bearer credential."""


class LocalStoreError(CertSyncError):
    """Raised when the local certificate store cannot be read."""


class ParseError(CertSyncError):
    """Raised for malformed certificate data or an unparseable identifier."""


class RemoteRequestError(CertSyncError):
    """Raised when a single remote call does not succeed.

    Parameters
    ----------
    message:
        Human-readable description of the failed operation.
    status:
        HTTP status code, or None when the request never got a response
        (timeout, connection failure).
    body:
        Response body text, if any.
    """

    def __init__(self, message: str, status: int | None = None, body: str = "") -> None:
        self.status = status
        self.body = body
        detail = f"{message}: {status if status is not None else 'no response'}"
        if body:
            detail = f"{detail} {body}"
        super().__init__(detail)
