"""Outbound identity for NetEase requests.

Hey future me - NetEase rejects requests without session-shaped cookies, even for
anonymous search. So:

- no credential   -> guest cookie (random NMTID + DeviceId, generated ONCE per process)
- credential      -> authenticated cookie built around MUSIC_U

The stored credential is whatever the user pasted in the login dialog: a full
header block, a full cookie string or just the bare token. We tolerate all three.
This object never stores the user credential - the caller passes it in on every call.
"""

import re
import secrets

from unistream.config.settings import DESKTOP_USER_AGENT

_SESSION_TOKEN_RE = re.compile(r"MUSIC_U=([0-9a-zA-Z]+)")
_SESSION_MARKER = "MUSIC_U="
_CLIENT_MARKER = "os=pc"
# bare tokens are long and contain no "key=value" structure
_BARE_TOKEN_MIN_LENGTH = 50
# anything shorter is treated as "no credential"
_MIN_CREDENTIAL_LENGTH = 6
# one "name=value" pair of a Cookie header value, names carry no spaces or colons
_COOKIE_PAIR_RE = re.compile(r"[\w.\-]+=[^\r\n]*")


def extract_session_token(raw_input: str | None) -> str | None:
    """Pull the session token out of arbitrary pasted text.

    Args:
        raw_input: Cookie string, header block, or a bare token

    Returns:
        The MUSIC_U value, or None if nothing token-shaped was found
    """
    if not raw_input:
        return None
    match = _SESSION_TOKEN_RE.search(raw_input)
    if match:
        return match.group(1)
    text = raw_input.strip()
    if len(text) > _BARE_TOKEN_MIN_LENGTH and "=" not in text:
        return text
    return None


def _is_cookie_string(text: str) -> bool:
    """True for a single-line `k=v; k2=v2` value that can be sent as a Cookie header as is."""
    if "\n" in text or "\r" in text:
        return False
    pairs = [part.strip() for part in text.split(";") if part.strip()]
    return bool(pairs) and all(_COOKIE_PAIR_RE.fullmatch(pair) for pair in pairs)


class CredentialContext:
    """Builds NetEase request headers for guest or authenticated calls."""

    def __init__(
        self,
        app_version: str = "2.9.7",
        referer: str = "https://music.163.com/",
        forwarded_ip: str = "115.239.211.112",
        user_agent: str = DESKTOP_USER_AGENT,
    ) -> None:
        self._app_version = app_version
        self._base_headers = {
            "Referer": referer,
            "User-Agent": user_agent,
            "Content-Type": "application/x-www-form-urlencoded",
        }
        if forwarded_ip:
            self._base_headers["X-Real-IP"] = forwarded_ip
            self._base_headers["X-Forwarded-For"] = forwarded_ip
        # immutable for the lifetime of the process
        self._guest_cookie = (
            f"{self._client_prefix()}"
            f"NMTID={secrets.token_hex(16)}; DeviceId={secrets.token_hex(8)};"
        )

    def _client_prefix(self) -> str:
        return f"os=pc; appver={self._app_version}; "

    def _token_cookie(self, token: str) -> str:
        return f"{self._client_prefix()}MUSIC_U={token};"

    @property
    def guest_cookie(self) -> str:
        return self._guest_cookie

    def guest_headers(self) -> dict[str, str]:
        """Headers of a plausible anonymous desktop client."""
        return {**self._base_headers, "Cookie": self._guest_cookie}

    def build_cookie(self, stored_credential: str | None) -> str:
        """Cookie header value for a stored credential (guest cookie as fallback)."""
        if not stored_credential or len(stored_credential.strip()) < _MIN_CREDENTIAL_LENGTH:
            return self._guest_cookie

        credential = stored_credential.strip()
        if _SESSION_MARKER in credential:
            if _is_cookie_string(credential):
                if _CLIENT_MARKER in credential:
                    return credential
                return f"{self._client_prefix()}{credential}"
            # header block or other free-form paste, only the token survives
            token = extract_session_token(credential)
            return self._token_cookie(token) if token else self._guest_cookie
        if "=" not in credential and ";" not in credential:
            return self._token_cookie(credential)
        # cookie-looking text without a session token does not authenticate anything
        return self._guest_cookie

    def resolve_headers(self, stored_credential: str | None) -> dict[str, str]:
        """Headers for a call made on behalf of `stored_credential` (or a guest)."""
        return {**self._base_headers, "Cookie": self.build_cookie(stored_credential)}

    def token_headers(self, token: str) -> dict[str, str]:
        """Headers carrying exactly one already-extracted session token."""
        return {**self._base_headers, "Cookie": self._token_cookie(token)}
