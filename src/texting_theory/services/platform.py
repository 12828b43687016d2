"""HTTP client for the host platform.

The host platform owns identities, bans, moderators, post flair, user flair and
private messages. This module wraps its REST surface:

- identity lookups that never raise and report degraded results instead
- display calls (flair, notifications) that raise ``PlatformError`` so callers
  can log and move on without touching vote state
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from texting_theory.core.settings import Settings
from texting_theory.services.identity import AccountStanding, BanStatus, VoterStanding

logger = logging.getLogger(__name__)

HTTP_NOT_FOUND = 404
HTTP_BAD_REQUEST = 400


class PlatformError(RuntimeError):
    """Raised when a platform call fails or returns an unexpected response."""


class DisplaySink(Protocol):
    """Outbound display effects. Every operation must be safe to repeat."""

    def set_post_flair(
        self,
        post_id: str,
        text: str,
        *,
        background_color: str | None = None,
        text_color: str = "light",
    ) -> None: ...

    def get_user_flair(self, user_id: str, community: str) -> str | None: ...

    def set_user_flair(
        self,
        user_id: str,
        community: str,
        text: str,
        *,
        background_color: str | None = None,
        text_color: str = "light",
    ) -> None: ...

    def send_notification(self, user_id: str, subject: str, body: str) -> None: ...


@dataclass(frozen=True)
class PlatformConfig:
    """Immutable configuration for platform calls."""

    base_url: str
    api_token: str | None
    timeout_seconds: float
    community: str


def load_platform_config(config: Settings) -> PlatformConfig:
    """Build the platform configuration from settings."""
    return PlatformConfig(
        base_url=config.platform_base_url,
        api_token=config.platform_api_token,
        timeout_seconds=float(config.platform_timeout_seconds),
        community=config.community_name,
    )


class PlatformClient:
    """Synchronous client for the host platform API.

    Implements both the identity capability and the display sink.
    """

    def __init__(
        self,
        config: PlatformConfig,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config
        headers = {"Accept": "application/json"}
        if config.api_token:
            headers["Authorization"] = f"Bearer {config.api_token}"
        self._client = httpx.Client(
            base_url=config.base_url,
            timeout=httpx.Timeout(config.timeout_seconds),
            headers=headers,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        json_data: Mapping[str, Any] | None = None,
        allow_not_found: bool = False,
    ) -> dict[str, Any] | None:
        try:
            response = self._client.request(method, path, json=json_data)
        except httpx.HTTPError as exc:
            raise PlatformError(f"Platform request failed: {method} {path}: {exc}") from exc

        if allow_not_found and response.status_code == HTTP_NOT_FOUND:
            return None
        if response.status_code >= HTTP_BAD_REQUEST:
            raise PlatformError(
                f"Platform responded with {response.status_code} for {method} {path}",
            )
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as exc:
            raise PlatformError(f"Platform returned invalid JSON for {method} {path}") from exc
        return body if isinstance(body, dict) else {}

    # --- Identity capability -----------------------------------------------------------
    def lookup_voter(self, user_id: str, community: str) -> VoterStanding:
        return VoterStanding(
            account=self._account(user_id),
            ban=self.ban_status(user_id, community),
        )

    def _account(self, user_id: str) -> AccountStanding | None:
        try:
            body = self._request("GET", f"/users/{user_id}", allow_not_found=True)
        except PlatformError as exc:
            logger.warning("Account lookup failed for %s: %s", user_id, exc)
            return None
        if not body:
            return None
        try:
            karma = int(body.get("link_karma") or 0) + int(body.get("comment_karma") or 0)
            return AccountStanding(
                user_id=str(body.get("id", user_id)),
                username=str(body["username"]),
                created_at_ms=int(body["created_at_ms"]),
                karma=karma,
            )
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Malformed account payload for %s: %s", user_id, exc)
            return None

    def ban_status(self, user_id: str, community: str) -> BanStatus:
        try:
            body = self._request("GET", f"/communities/{community}/banned/{user_id}")
        except PlatformError as exc:
            logger.warning("Ban lookup failed for %s in %s: %s", user_id, community, exc)
            return BanStatus.UNKNOWN
        if body is None or "banned" not in body:
            return BanStatus.UNKNOWN
        return BanStatus.BANNED if body["banned"] else BanStatus.NOT_BANNED

    def is_moderator(self, user_id: str, community: str) -> bool | None:
        try:
            body = self._request("GET", f"/communities/{community}/moderators/{user_id}")
        except PlatformError as exc:
            logger.warning("Moderator lookup failed for %s in %s: %s", user_id, community, exc)
            return None
        if body is None or "moderator" not in body:
            return None
        return bool(body["moderator"])

    # --- Display sink ------------------------------------------------------------------
    def set_post_flair(
        self,
        post_id: str,
        text: str,
        *,
        background_color: str | None = None,
        text_color: str = "light",
    ) -> None:
        payload: dict[str, Any] = {"text": text, "text_color": text_color}
        if background_color:
            payload["background_color"] = background_color
        self._request("PUT", f"/posts/{post_id}/flair", json_data=payload)

    def get_user_flair(self, user_id: str, community: str) -> str | None:
        body = self._request(
            "GET",
            f"/communities/{community}/users/{user_id}/flair",
            allow_not_found=True,
        )
        if not body:
            return None
        text = body.get("text")
        return str(text) if text else None

    def set_user_flair(
        self,
        user_id: str,
        community: str,
        text: str,
        *,
        background_color: str | None = None,
        text_color: str = "light",
    ) -> None:
        payload: dict[str, Any] = {"text": text, "text_color": text_color}
        if background_color:
            payload["background_color"] = background_color
        self._request(
            "PUT",
            f"/communities/{community}/users/{user_id}/flair",
            json_data=payload,
        )

    def send_notification(self, user_id: str, subject: str, body: str) -> None:
        self._request(
            "POST",
            "/messages",
            json_data={"to": user_id, "subject": subject, "body": body},
        )
