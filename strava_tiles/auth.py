"""OAuth token refresh for the Strava API.

Exchanges a refresh token for an access token using Strava's OAuth endpoint,
with HTTP retries for transient failures and logging that never prints
secrets in full.
"""

from __future__ import annotations

import logging
from typing import Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import CLIENT_ID, CLIENT_SECRET, REQUEST_TIMEOUT, STRAVA_OAUTH_URL

# Reusable session with limited retry for transient network/server issues.
_token_retry = Retry(
    total=3,
    backoff_factor=1.0,
    status_forcelist=[429, 500, 502, 503, 504],
    allowed_methods=["POST"],
)
_session = requests.Session()
_session.mount("https://", HTTPAdapter(max_retries=_token_retry))
_session.mount("http://", HTTPAdapter(max_retries=_token_retry))


class TokenError(Exception):
    """Raised when token refresh fails (after retries)."""


def _mask_tail(value: str | None, visible: int = 4) -> str:
    if not value:
        return ""
    if len(value) <= visible:
        return "*" * len(value)
    return "****" + value[-visible:]


def _error_detail(resp: requests.Response) -> str | None:
    try:
        data = resp.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    detail = data.get("message")
    errors = data.get("errors")
    if isinstance(errors, list):
        codes = []
        for err in errors:
            if isinstance(err, dict) and err.get("code"):
                field = err.get("field")
                codes.append(f"{field}:{err['code']}" if field else str(err["code"]))
        if codes:
            detail = f"{detail} | {' '.join(codes)}" if detail else " ".join(codes)
    return detail


def get_access_token(refresh_token: str) -> Tuple[str, str | None]:
    """Exchange a refresh token for a new access (and possibly refresh) token.

    Returns:
        ``(access_token, refresh_token)``; the second element is None when
        Strava did not send one.

    Raises:
        TokenError: If credentials are missing, the request fails, or the
            response lacks an access token.
    """
    if not CLIENT_ID or not CLIENT_SECRET:
        raise TokenError(
            "Client credentials not configured (STRAVA_CLIENT_ID / STRAVA_CLIENT_SECRET missing)"
        )
    if not refresh_token:
        raise TokenError("Missing refresh token")

    logger = logging.getLogger(__name__)
    logger.info("Refreshing Strava token refresh_token=%s", _mask_tail(refresh_token))
    payload = {
        "client_id": CLIENT_ID,
        "client_secret": CLIENT_SECRET,
        "grant_type": "refresh_token",
        "refresh_token": refresh_token,
    }
    try:
        resp = _session.post(STRAVA_OAUTH_URL, data=payload, timeout=REQUEST_TIMEOUT)
    except requests.exceptions.RequestException as e:
        logger.error("Token request transport error: %s", e)
        raise TokenError("Transport failure during token refresh") from e

    status = resp.status_code
    if status >= 400:
        detail = _error_detail(resp)
        logger.error(
            "Token refresh failed status=%s%s",
            status,
            f" detail={detail}" if detail else "",
        )
        raise TokenError(f"Token refresh failed with status {status}")

    try:
        data = resp.json()
    except ValueError as e:
        logger.error("Invalid JSON in token response: %s", e)
        raise TokenError("Invalid JSON in token response") from e
    if not isinstance(data, dict):
        raise TokenError("Unexpected token response shape")

    access_token = data.get("access_token")
    new_refresh_token = data.get("refresh_token")
    if not access_token:
        logger.error("No access_token in token response")
        raise TokenError("No access_token in response")
    logger.info(
        "Token refresh ok access_token_len=%s refresh_token_changed=%s",
        len(access_token),
        bool(new_refresh_token and new_refresh_token != refresh_token),
    )
    return access_token, new_refresh_token


__all__ = ["TokenError", "get_access_token"]
