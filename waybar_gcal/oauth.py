"""Google OAuth2 token endpoint helpers and the interactive authorization flow."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
import http.client
import json
import logging
from typing import Callable, Dict, Optional
from urllib import error as urlerror
from urllib import parse as urlparse
from urllib import request as urlrequest

from .config import ConfigError, Settings
from .credentials import ClientConfig, Token, read_client_config, read_token, write_token


logger = logging.getLogger(__name__)

CALENDAR_READONLY_SCOPE = "https://www.googleapis.com/auth/calendar.readonly"
AUTH_STATE = "no-state"

# One prompt plus one re-prompt after a failed exchange.
MAX_EXCHANGE_ATTEMPTS = 2


class AuthError(RuntimeError):
    """Raised when a token cannot be obtained or refreshed."""


class AuthState(str, Enum):
    """Steps of the interactive authorization-code sequence."""

    NEED_AUTHORIZATION = "need_authorization"
    AWAITING_CODE = "awaiting_code"
    EXCHANGING = "exchanging"
    PERSISTED = "persisted"


def authorization_url(client: ClientConfig, state: str = AUTH_STATE) -> str:
    """Build the consent URL for offline (refresh-token) access."""
    params = {
        "access_type": "offline",
        "client_id": client.client_id,
        "response_type": "code",
        "scope": CALENDAR_READONLY_SCOPE,
        "state": state,
    }
    if client.redirect_uri:
        params["redirect_uri"] = client.redirect_uri
    separator = "&" if "?" in client.auth_uri else "?"
    return f"{client.auth_uri}{separator}{urlparse.urlencode(params)}"


def _token_request(client: ClientConfig, fields: Dict[str, str]) -> dict:
    """POST a form to the token endpoint and return the decoded response."""
    payload = urlparse.urlencode(
        {
            "client_id": client.client_id,
            "client_secret": client.client_secret,
            **fields,
        }
    ).encode("utf-8")

    req = urlrequest.Request(
        client.token_uri,
        data=payload,
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        method="POST",
    )

    try:
        with urlrequest.urlopen(req, timeout=15) as resp:
            data = json.loads(resp.read().decode("utf-8"))
    except urlerror.HTTPError as exc:
        detail = exc.read().decode("utf-8", errors="ignore")
        raise AuthError(f"Token request failed ({exc.code}): {detail}") from exc
    except urlerror.URLError as exc:
        raise AuthError(f"Token network error: {exc}") from exc
    except (OSError, http.client.HTTPException) as exc:
        raise AuthError(f"Token connection failed: {exc!r}") from exc
    except json.JSONDecodeError as exc:
        raise AuthError(f"Token response was not valid JSON: {exc}") from exc

    if not data.get("access_token"):
        raise AuthError("Token response missing access_token.")
    return data


def _token_from_response(
    data: dict,
    *,
    fallback_refresh_token: str = "",
    now: Optional[datetime] = None,
) -> Token:
    expiry = None
    expires_in = data.get("expires_in")
    if expires_in:
        expiry = (now or datetime.now(timezone.utc)) + timedelta(
            seconds=int(expires_in)
        )
    return Token(
        access_token=str(data["access_token"]),
        token_type=data.get("token_type") or "Bearer",
        refresh_token=data.get("refresh_token") or fallback_refresh_token,
        expiry=expiry,
    )


def exchange_code(client: ClientConfig, code: str) -> Token:
    """Trade an authorization code for a token pair."""
    fields = {"code": code, "grant_type": "authorization_code"}
    if client.redirect_uri:
        fields["redirect_uri"] = client.redirect_uri
    return _token_from_response(_token_request(client, fields))


def refresh_token(client: ClientConfig, token: Token) -> Token:
    """Get a fresh access token; the refresh token is kept if none is returned."""
    if not token.refresh_token:
        raise AuthError("Token has no refresh token; run 'setup' to authorize.")
    data = _token_request(
        client,
        {"refresh_token": token.refresh_token, "grant_type": "refresh_token"},
    )
    logger.debug("Access token refreshed")
    return _token_from_response(data, fallback_refresh_token=token.refresh_token)


def access_token_for(client: ClientConfig, token: Token) -> str:
    """Return a usable access token, refreshing in memory when expired."""
    if token.is_valid():
        return token.access_token
    if not token.refresh_token:
        raise AuthError("Stored token expired and has no refresh token; run 'setup'.")
    return refresh_token(client, token).access_token


class AuthorizationFlow:
    """Interactive authorization-code sequence.

    NEED_AUTHORIZATION prints the consent URL, AWAITING_CODE reads a code,
    EXCHANGING trades it for a token and PERSISTED writes it out. A failed
    exchange goes back to AWAITING_CODE once.
    """

    def __init__(
        self,
        client: ClientConfig,
        persist: Callable[[Token], None],
        *,
        prompt: Callable[[], str] = input,
        echo: Callable[[str], None] = print,
    ) -> None:
        self.client = client
        self.persist = persist
        self.prompt = prompt
        self.echo = echo
        self.state = AuthState.NEED_AUTHORIZATION
        self.attempts = 0

    def run(self) -> Token:
        code = ""

        while True:
            if self.state is AuthState.NEED_AUTHORIZATION:
                self.echo(authorization_url(self.client))
                self.state = AuthState.AWAITING_CODE

            elif self.state is AuthState.AWAITING_CODE:
                try:
                    code = self.prompt().strip()
                except EOFError as exc:
                    raise AuthError("No authorization code provided.") from exc
                if not code:
                    raise AuthError("No authorization code provided.")
                self.state = AuthState.EXCHANGING

            elif self.state is AuthState.EXCHANGING:
                self.attempts += 1
                try:
                    token = exchange_code(self.client, code)
                except AuthError as exc:
                    if self.attempts >= MAX_EXCHANGE_ATTEMPTS:
                        raise AuthError(
                            f"Authorization code exchange failed twice: {exc}"
                        ) from exc
                    logger.warning(f"Code exchange failed, enter the code again: {exc}")
                    self.state = AuthState.AWAITING_CODE
                    continue
                self.persist(token)
                self.state = AuthState.PERSISTED
                return token


def setup_token(
    settings: Settings,
    *,
    prompt: Callable[[], str] = input,
    echo: Callable[[str], None] = print,
) -> Token:
    """Make sure token.json holds a usable token.

    A stored refresh token is always exercised first; if that fails or no
    token exists, the interactive authorization flow runs.
    """

    client = read_client_config(settings.credentials_path)

    def persist(token: Token) -> None:
        write_token(settings.token_path, token)

    try:
        stored: Optional[Token] = read_token(settings.token_path)
    except ConfigError as exc:
        logger.info(f"No usable stored token: {exc}")
        stored = None

    if stored is not None and stored.refresh_token:
        try:
            refreshed = refresh_token(client, stored)
        except AuthError as exc:
            logger.warning(f"Refreshing the stored token failed: {exc}")
        else:
            persist(refreshed)
            return refreshed

    return AuthorizationFlow(client, persist, prompt=prompt, echo=echo).run()
