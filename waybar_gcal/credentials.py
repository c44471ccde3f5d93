"""On-disk OAuth client config and token storage."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import ConfigError


logger = logging.getLogger(__name__)

DEFAULT_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"

# Tokens this close to expiry are treated as expired.
EXPIRY_DELTA = timedelta(seconds=10)


def _now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class ClientConfig:
    """OAuth client registration loaded from credentials.json."""

    client_id: str
    client_secret: str
    auth_uri: str = DEFAULT_AUTH_URI
    token_uri: str = DEFAULT_TOKEN_URI
    redirect_uris: List[str] = field(default_factory=list)

    @property
    def redirect_uri(self) -> str:
        return self.redirect_uris[0] if self.redirect_uris else ""


@dataclass(slots=True)
class Token:
    """OAuth token pair as persisted in token.json."""

    access_token: str = ""
    token_type: str = "Bearer"
    refresh_token: str = ""
    expiry: Optional[datetime] = None

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """True when an access token is present and not about to expire."""
        if not self.access_token:
            return False
        if self.expiry is None:
            return True
        return (now or _now()) + EXPIRY_DELTA < self.expiry

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "refresh_token": self.refresh_token,
        }
        if self.expiry is not None:
            data["expiry"] = self.expiry.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Token":
        expiry = None
        raw_expiry = data.get("expiry")
        if raw_expiry:
            expiry = _parse_expiry(str(raw_expiry))
        return cls(
            access_token=data.get("access_token", ""),
            token_type=data.get("token_type") or "Bearer",
            refresh_token=data.get("refresh_token", ""),
            expiry=expiry,
        )


def _parse_expiry(value: str) -> Optional[datetime]:
    """Parse an RFC 3339 expiry, including the nanosecond form Go writes.

    Go marshals a token without expiry as the zero time (year 1); that maps
    to ``None``.
    """
    text = value.replace("Z", "+00:00")
    # Trim fractional seconds to the microseconds fromisoformat accepts.
    if "." in text:
        head, _, rest = text.partition(".")
        digits = ""
        while rest and rest[0].isdigit():
            digits += rest[0]
            rest = rest[1:]
        text = f"{head}.{digits[:6].ljust(6, '0')}{rest}"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ConfigError(f"Invalid token expiry '{value}'") from exc
    if parsed.year == 1:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _read_json(path: Path, label: str) -> Dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Couldn't read {label} file from {path}: {exc}") from exc
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Couldn't parse {label} file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{label.capitalize()} file {path} must hold a JSON object.")
    return data


def read_client_config(path: Path) -> ClientConfig:
    """Load the OAuth client from a Google client-secrets file.

    Both the ``installed`` and ``web`` top-level keys are accepted.

    Raises:
        ConfigError: if the file is missing, malformed or lacks client id/secret.
    """

    data = _read_json(path, "credentials")
    section = data.get("installed") or data.get("web")
    if not isinstance(section, dict):
        raise ConfigError(
            f"Credentials file {path} has no 'installed' or 'web' client section."
        )

    missing = [key for key in ("client_id", "client_secret") if not section.get(key)]
    if missing:
        raise ConfigError(
            f"Credentials file {path} is missing: {', '.join(missing)}"
        )

    return ClientConfig(
        client_id=section["client_id"],
        client_secret=section["client_secret"],
        auth_uri=section.get("auth_uri") or DEFAULT_AUTH_URI,
        token_uri=section.get("token_uri") or DEFAULT_TOKEN_URI,
        redirect_uris=list(section.get("redirect_uris") or []),
    )


def read_token(path: Path) -> Token:
    """Load the stored token.

    Raises:
        ConfigError: if the file is missing or malformed.
    """

    return Token.from_dict(_read_json(path, "token"))


def write_token(path: Path, token: Token) -> None:
    """Persist the token as a single JSON object readable only by the owner."""

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(token.to_dict(), handle)
        os.chmod(path, 0o600)
    except OSError as exc:
        raise ConfigError(f"Couldn't write token file {path}: {exc}") from exc
    logger.debug(f"Token written to {path}")
