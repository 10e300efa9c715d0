"""Run configuration — INI file validated into pydantic models.

Layout::

    [remote]
    base_url = https://fw.example.net
    api_key = <token>          ; or: api_key_env = CERTSYNC_API_KEY
    scope =                    ; optional vdom
    timeout = 30
    verify_tls = true
    archive_field = file_content

    [local]
    store_root = ./certs

    [cert:web]
    store = web
    subject = www.example.net
    issuer = Let's Encrypt
    force = false

Every ``[cert:<family>]`` section describes one certificate family.
"""
from __future__ import annotations

import configparser
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator

from certsync.errors import ConfigError

CERT_SECTION_PREFIX = "cert:"

SAMPLE_CONFIG = """\
; certsync configuration

[remote]
; Base address of the appliance REST API.
base_url = https://firewall.example.net
; Bearer token of a REST API admin; or name an environment variable
; holding it with api_key_env instead.
api_key = CHANGE-ME
; Optional vdom; leave empty for the global scope.
scope =
; Request timeout in seconds.
timeout = 30
verify_tls = true
; Name of the archive field in the import payload (firmware dependent).
archive_field = file_content

[local]
; Directory of PEM bundles (certificate chain + private key).
store_root = ./certs

; One section per certificate family. The family must already exist on
; the appliance; certsync rotates it but never imports it the first time.
[cert:web]
; Sub-directory of store_root holding this family's bundles.
store =
; Optional filters; default to the subject and issuer of the remote certificate.
;subject = www.example.net
;issuer = Let's Encrypt
force = false
"""


class RemoteSettings(BaseModel):
    """Connection settings for the remote appliance.

    Parameters
    ----------
    base_url:
        Base address of the appliance, without trailing slash.
    api_key:
        Bearer credential, held for the lifetime of the process.
    scope:
        Optional scope qualifier (vdom). None means global.
    timeout:
        Per-request timeout in seconds.
    verify_tls:
        Verify the appliance's TLS certificate.
    archive_field:
        Field carrying the base64 archive in the import payload.
    """

    base_url: str
    api_key: SecretStr
    scope: Optional[str] = None
    timeout: float = Field(default=30.0, gt=0)
    verify_tls: bool = True
    archive_field: str = "file_content"

    @field_validator("base_url")
    @classmethod
    def _strip_base_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            raise ValueError("base_url must not be empty")
        return value

    @field_validator("scope", mode="before")
    @classmethod
    def _empty_scope_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not str(value).strip():
            return None
        return str(value).strip()

    @field_validator("api_key")
    @classmethod
    def _non_empty_key(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().strip():
            raise ValueError("api_key must not be empty")
        return value

    @field_validator("archive_field")
    @classmethod
    def _non_empty_field(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("archive_field must not be empty")
        return value.strip()


class LocalSettings(BaseModel):
    """Local certificate store settings."""

    store_root: Path = Path(".")


class FamilySettings(BaseModel):
    """Descriptor of one certificate family.

    Parameters
    ----------
    family:
        Family name (the part of the slot identifier before the date).
    store:
        Store selector relative to the local store root.
    subject:
        Optional subject filter override.
    issuer:
        Optional issuer filter override.
    force:
        Rotate even if the local certificate is not newer.
    """

    family: str
    store: str = ""
    subject: Optional[str] = None
    issuer: Optional[str] = None
    force: bool = False

    @field_validator("family")
    @classmethod
    def _non_empty_family(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("family name must not be empty")
        return value

    @field_validator("subject", "issuer", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not str(value).strip():
            return None
        return str(value).strip()


class RunSettings(BaseModel):
    """Complete run configuration."""

    remote: RemoteSettings
    local: LocalSettings = Field(default_factory=LocalSettings)
    families: list[FamilySettings]


def _read_parser(path: Path) -> configparser.ConfigParser:
    parser = configparser.ConfigParser(inline_comment_prefixes=(";", "#"), interpolation=None)
    try:
        with path.open(encoding="utf-8-sig") as handle:
            parser.read_file(handle)
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration {str(path)!r}: {exc}") from exc
    except configparser.Error as exc:
        raise ConfigError(f"Malformed configuration {str(path)!r}: {exc}") from exc
    return parser


def _resolve_api_key(section: configparser.SectionProxy) -> str:
    env_name = section.get("api_key_env", "").strip()
    if env_name:
        value = os.environ.get(env_name, "")
        if not value:
            raise ConfigError(f"remote.api_key_env names {env_name!r}, which is not set")
        return value
    value = section.get("api_key", "").strip()
    if not value:
        raise ConfigError("remote.api_key required")
    return value


def load_settings(path: Path) -> RunSettings:
    """Load and validate the configuration at *path*.

    Relative store roots are resolved against the configuration file's
    directory.

    Raises
    ------
    ConfigError
        If the file is unreadable or a required setting is missing or invalid.
    """
    parser = _read_parser(path)

    if not parser.has_section("remote"):
        raise ConfigError("Missing [remote] section")
    remote = parser["remote"]
    if not remote.get("base_url", "").strip():
        raise ConfigError("remote.base_url required")

    families: list[dict[str, object]] = []
    for name in parser.sections():
        if not name.lower().startswith(CERT_SECTION_PREFIX):
            continue
        family = name[len(CERT_SECTION_PREFIX) :].strip()
        if not family:
            raise ConfigError(f"Section [{name}] names no certificate family")
        section = parser[name]
        families.append(
            {
                "family": family,
                "store": section.get("store", ""),
                "subject": section.get("subject"),
                "issuer": section.get("issuer"),
                "force": section.get("force", "false"),
            }
        )
    if not families:
        raise ConfigError("Missing certificate sections")

    store_root = Path(parser.get("local", "store_root", fallback=".").strip() or ".")
    if not store_root.is_absolute():
        store_root = path.parent / store_root

    try:
        return RunSettings(
            remote=RemoteSettings(
                base_url=remote.get("base_url"),
                api_key=_resolve_api_key(remote),
                scope=remote.get("scope"),
                timeout=remote.get("timeout", "30"),
                verify_tls=remote.get("verify_tls", "true"),
                archive_field=remote.get("archive_field", "file_content"),
            ),
            local=LocalSettings(store_root=store_root),
            families=families,
        )
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration {str(path)!r}: {exc}") from exc


def write_sample_config(path: Path) -> None:
    """Write a commented sample configuration to *path*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(SAMPLE_CONFIG, encoding="utf-8")
