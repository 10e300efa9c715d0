"""RemoteApplianceClient — REST client for the appliance's certificate API.

A thin, synchronous wrapper over ``requests``. Every call carries the
configured timeout; there is no retry layer. Non-success responses and
transport failures are raised as :class:`RemoteRequestError` so callers
decide at which scope a failure is contained.
"""
from __future__ import annotations

import base64
import logging
from typing import Any, Callable
from urllib.parse import quote

import requests
from cryptography import x509

from certsync.certificates.record import CertificateRecord
from certsync.config import RemoteSettings
from certsync.errors import AuthError, ParseError, RemoteRequestError
from certsync.remote.models import CertificateEntry, Results, UsageEntry

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v2"
STATUS_PATH = "/monitor/system/status"
LOCAL_CERTS_PATH = "/cmdb/vpn.certificate/local"
IMPORT_PATH = "/monitor/vpn-certificate/local/import"
USAGE_PATH = "/monitor/system/object/usage"

PEM_BEGIN = "-----BEGIN CERTIFICATE-----"
PEM_END = "-----END CERTIFICATE-----"

# Factory certificates the appliance generates for itself carry no PEM block.
INTERNAL_PREFIX = "fortinet_"


def parse_certificate_block(text: str) -> x509.Certificate:
    """Parse the first PEM certificate block embedded in *text*.

    Raises
    ------
    ParseError
        If no complete block is present or it does not decode.
    """
    begin = text.find(PEM_BEGIN)
    end = text.find(PEM_END)
    if begin < 0 or end < 0 or end <= begin:
        raise ParseError("invalid PEM")
    block = text[begin : end + len(PEM_END)]
    try:
        return x509.load_pem_x509_certificate(block.encode("ascii"))
    except (ValueError, UnicodeEncodeError) as exc:
        raise ParseError(f"invalid PEM ({exc})") from exc


def _scope_label(scope: str | None) -> str:
    if not scope or scope.lower() == "root":
        return "global"
    return "vdom"


class RemoteApplianceClient:
    """Client for certificate objects and the configuration usage graph.

    Parameters
    ----------
    settings:
        Endpoint, bearer credential, timeout and TLS settings.
    session:
        Optional pre-built session (tests inject a mock here).
    """

    def __init__(
        self,
        settings: RemoteSettings,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = settings
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {settings.api_key.get_secret_value()}",
                "Accept": "application/json",
            }
        )

    @property
    def settings(self) -> RemoteSettings:
        return self._settings

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self._settings.base_url}{API_PREFIX}{path}"

    def _request(
        self,
        method: str,
        path: str,
        scope: str | None = None,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> requests.Response:
        """Send one request and return the raw response.

        Raises
        ------
        RemoteRequestError
            On timeout or connection failure (status None).
        """
        query = dict(params or {})
        if scope:
            query["vdom"] = scope
        logger.debug("HTTP %s %s %s", method, path, query)
        try:
            return self._session.request(
                method=method,
                url=self._url(path),
                params=query or None,
                json=json,
                timeout=self._settings.timeout,
                verify=self._settings.verify_tls,
            )
        except requests.RequestException as exc:
            raise RemoteRequestError(f"{method} {path} failed ({exc})") from exc

    def _checked(self, response: requests.Response, action: str) -> requests.Response:
        if not response.ok:
            raise RemoteRequestError(action, status=response.status_code, body=response.text)
        return response

    @staticmethod
    def _json(response: requests.Response, action: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteRequestError(
                f"{action}: response is not JSON", status=response.status_code, body=response.text
            ) from exc

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    def verify_auth(self) -> None:
        """Probe the status endpoint with the bearer credential.

        Raises
        ------
        AuthError
            If the probe does not succeed.
        """
        try:
            response = self._request("GET", STATUS_PATH)
        except RemoteRequestError as exc:
            raise AuthError(f"Remote appliance unreachable: {exc}") from exc
        if not response.ok:
            raise AuthError(f"Remote appliance auth failed: {response.status_code}")
        logger.debug("Authenticated against %s", self._settings.base_url)

    # ------------------------------------------------------------------
    # Certificates
    # ------------------------------------------------------------------

    def list_certificate_names(self, scope: str | None) -> list[str]:
        """Return the identifiers of all local certificates on the appliance."""
        action = "List certificates"
        response = self._checked(self._request("GET", LOCAL_CERTS_PATH, scope), action)
        results = Results.decode(self._json(response, action))
        names: list[str] = []
        for obj in results.objects():
            entry = CertificateEntry.model_validate(obj)
            if entry.name and entry.name.strip():
                names.append(entry.name)
        return names

    def list_certificates(
        self,
        scope: str | None,
        predicate: Callable[[str], bool] | None = None,
    ) -> list[CertificateRecord]:
        """Return certificate records, fetching details one name at a time.

        Parameters
        ----------
        scope:
            Optional scope qualifier (vdom).
        predicate:
            If given, only names for which it returns True are fetched.
        """
        records: list[CertificateRecord] = []
        for name in self.list_certificate_names(scope):
            if predicate is not None and not predicate(name):
                continue
            record = self.get_certificate_detail(name, scope)
            if record is not None:
                records.append(record)
        return records

    def get_certificate_detail(self, identifier: str, scope: str | None) -> CertificateRecord | None:
        """Fetch one certificate object and parse its embedded PEM block.

        Every failure is a soft skip: it is logged and None is returned.
        """
        try:
            response = self._request("GET", f"{LOCAL_CERTS_PATH}/{quote(identifier, safe='')}", scope)
        except RemoteRequestError as exc:
            logger.warning("Get cert meta skipped for %r: %s", identifier, exc)
            return None
        if not response.ok:
            logger.warning(
                "Get cert meta skipped for %r: %s %s", identifier, response.status_code, response.reason
            )
            return None

        try:
            body = response.json()
        except ValueError:
            logger.warning("Get cert meta skipped for %r: response is not JSON", identifier)
            return None

        results = Results.decode(body)
        obj = results.first()
        if obj is None:
            logger.warning("Get cert meta skipped for %r: %s 'results'", identifier, results.kind.value)
            return None

        entry = CertificateEntry.model_validate(obj)
        internal = identifier.lower().startswith(INTERNAL_PREFIX)
        try:
            if entry.certificate is None:
                raise ParseError("'certificate' field missing")
            return CertificateRecord.from_x509(identifier, parse_certificate_block(entry.certificate))
        except ParseError as exc:
            if internal:
                logger.debug("Get cert meta skipped for %r: %s", identifier, exc)
            else:
                logger.warning("Get cert meta skipped for %r: %s", identifier, exc)
            return None

    def import_certificate(self, scope: str | None, identifier: str, archive: bytes, password: str) -> None:
        """Import a PKCS#12 archive under *identifier*."""
        payload = {
            "type": "pkcs12",
            "certname": identifier,
            "password": password,
            "scope": _scope_label(scope),
            self._settings.archive_field: base64.b64encode(archive).decode("ascii"),
        }
        self._checked(
            self._request("POST", IMPORT_PATH, scope, json=payload),
            f"Import cert {identifier!r} failed",
        )

    def delete_certificate(self, scope: str | None, identifier: str) -> None:
        """Delete the certificate object *identifier*."""
        self._checked(
            self._request("DELETE", f"{LOCAL_CERTS_PATH}/{quote(identifier, safe='')}", scope),
            f"Delete cert {identifier!r} failed",
        )

    # ------------------------------------------------------------------
    # Usage graph
    # ------------------------------------------------------------------

    def query_usage(
        self,
        scope: str | None,
        object_type: tuple[str, str],
        identifier: str,
    ) -> list[UsageEntry]:
        """Return the raw entries of objects currently using *identifier*.

        Parameters
        ----------
        object_type:
            ``(path, name)`` of the referenced table, e.g.
            ``("vpn.certificate", "local")``.
        """
        q_path, q_name = object_type
        action = f"Enumerate usage references for {identifier!r}"
        response = self._checked(
            self._request(
                "GET",
                USAGE_PATH,
                scope,
                params={"q_path": q_path, "q_name": q_name, "mkey": identifier},
            ),
            action,
        )
        results = Results.decode(self._json(response, action))
        obj = results.first()
        using = obj.get("currently_using") if obj is not None else None
        if not isinstance(using, list):
            return []
        return [UsageEntry.model_validate(item) for item in using if isinstance(item, dict)]

    def _object_path(self, path: str, location: str, key: str) -> str:
        return f"/cmdb/{path}/{location}/{quote(key, safe='')}"

    def get_object(self, scope: str | None, path: str, location: str, key: str) -> dict[str, Any]:
        """Return the current snapshot of one configuration object."""
        target = self._object_path(path, location, key)
        action = f"Read {target} failed"
        response = self._checked(self._request("GET", target, scope), action)
        obj = Results.decode(self._json(response, action)).first()
        if obj is None:
            raise RemoteRequestError(f"{action}: unexpected 'results' shape", status=response.status_code)
        return obj

    def put_object(
        self,
        scope: str | None,
        path: str,
        location: str,
        key: str,
        payload: dict[str, Any],
        action: str | None = None,
    ) -> None:
        """Overwrite attributes of one configuration object."""
        target = self._object_path(path, location, key)
        self._checked(
            self._request("PUT", target, scope, json=payload),
            action or f"Write {target} failed",
        )
