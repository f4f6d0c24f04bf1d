"""
Import settings, command line defaults and input validation.

The settings are captured once from the form and handed to the workflow as an
immutable value, so edits made while a run is in progress never reach it.
"""

import logging
from dataclasses import dataclass, replace, fields
from typing import Dict, List, Optional, Any

from . import config
from .errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, repr=False)
class ImportSettings:
    """Everything a single import run needs."""
    server_url: str = config.BITWARDEN_CLOUD_URL
    api_client_id: str = ""
    api_client_secret: str = ""
    master_password: str = ""
    key_connector: bool = False
    service: str = config.SERVICE_LASTPASS
    lastpass_email: str = ""
    lastpass_password: str = ""
    skip_shared: bool = False

    def uses_custom_server(self) -> bool:
        """True when the server URL is set and differs from the Bitwarden cloud."""
        return not _is_blank(self.server_url) and self.server_url != config.BITWARDEN_CLOUD_URL

    def cleared(self) -> 'ImportSettings':
        """Return a copy with the sensitive inputs emptied."""
        return replace(
            self,
            server_url="",
            api_client_id="",
            api_client_secret="",
            key_connector=False,
            master_password="",
            lastpass_email="",
            lastpass_password="",
        )

    def __repr__(self) -> str:
        # Never expose secrets in logs or tracebacks.
        return f"ImportSettings(server_url={self.server_url!r}, service={self.service!r}, key_connector={self.key_connector}, skip_shared={self.skip_shared})"


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def validate_settings(settings: ImportSettings) -> Optional[str]:
    """
    Check that all required inputs are present.

    Args:
        settings: The settings to check

    Returns:
        None if the settings are complete, otherwise the reason they are not
    """
    if _is_blank(settings.api_client_id) or _is_blank(settings.api_client_secret):
        return config.MSG_API_KEY_REQUIRED

    if _is_blank(settings.master_password) and not settings.key_connector:
        return config.MSG_MASTER_PASSWORD_REQUIRED

    if settings.service not in config.SUPPORTED_SERVICES:
        return config.MSG_UNSUPPORTED_SERVICE

    if settings.service == config.SERVICE_LASTPASS:
        if _is_blank(settings.lastpass_email) or _is_blank(settings.lastpass_password):
            return config.MSG_LASTPASS_CREDENTIALS_REQUIRED

    return None


def ensure_valid(settings: ImportSettings) -> None:
    """
    Raise ValidationError if the settings are incomplete.

    Raises:
        ValidationError: With the first missing requirement as message
    """
    reason = validate_settings(settings)
    if reason is not None:
        raise ValidationError(reason)


def parse_commandline_defaults(args: List[str]) -> Dict[str, Any]:
    """
    Parse `key=value` startup arguments into ImportSettings field values.

    Arguments without '=' and unknown keys are ignored. Only the first '='
    separates key from value.

    Args:
        args: Raw command line arguments

    Returns:
        Mapping of ImportSettings field name to value
    """
    overrides: Dict[str, Any] = {}
    for arg in args:
        if '=' not in arg:
            continue

        key, value = arg.split('=', 1)
        field_name = config.COMMANDLINE_DEFAULT_KEYS.get(key)
        if field_name is None:
            logger.debug(f"Ignoring unknown startup argument '{key}'")
            continue

        if key in config.COMMANDLINE_FLAG_KEYS:
            overrides[field_name] = value == "1"
        else:
            overrides[field_name] = value

    return overrides


def settings_from_commandline(args: List[str], base: Optional[ImportSettings] = None) -> ImportSettings:
    """Build settings from the defaults, overridden by `key=value` startup arguments."""
    base = base or ImportSettings()
    overrides = parse_commandline_defaults(args)
    known = {f.name for f in fields(ImportSettings)}
    return replace(base, **{k: v for k, v in overrides.items() if k in known})
