"""WeCom group-bot webhook delivery with bounded retry."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import requests

from ..config import settings

logger = logging.getLogger(__name__)


# errcode -> operator-actionable message
PROVIDER_ERROR_MESSAGES: dict[int, str] = {
    48002: "WeCom API forbidden - IP not whitelisted. Please add webhook URL without IP restrictions.",
    45009: "API call frequency limit exceeded. Please wait and try again.",
    40014: "Invalid access token. Please check your webhook URL.",
    93000: "Webhook URL is invalid or disabled.",
}
# Codes that will not succeed on an immediate retry.
TERMINAL_ERROR_CODES: frozenset[int] = frozenset({48002, 40014, 93000})


class WeComDeliveryError(Exception):
    """Base class for a failed delivery attempt."""

    def __init__(self, message: str, *, response: dict[str, Any] | None = None):
        super().__init__(message)
        self.response = response or {}


class TransientProviderError(WeComDeliveryError):
    """Network failure, non-2xx status or throttling; worth retrying."""


class ProviderRejected(WeComDeliveryError):
    """Provider answered with a structured non-zero errcode."""

    def __init__(self, errcode: int, errmsg: str | None, *, response: dict[str, Any] | None = None):
        super().__init__(f"errcode={errcode}: {errmsg or 'unknown error'}", response=response)
        self.errcode = errcode
        self.errmsg = errmsg

    @property
    def is_terminal(self) -> bool:
        return self.errcode in TERMINAL_ERROR_CODES


def describe_provider_error(errcode: int | None, errmsg: str | None) -> str | None:
    """Human-readable error for a provider errcode (falls back to the raw errmsg)."""
    if errcode is None:
        return errmsg
    return PROVIDER_ERROR_MESSAGES.get(errcode) or errmsg


def mask_webhook_url(url: str) -> str:
    """Hide the bot key when logging webhook URLs."""
    parsed = urlparse(url)
    if not parsed.query:
        return url
    query = [(k, "***" if k.lower() == "key" else v) for k, v in parse_qsl(parsed.query)]
    return urlunparse(parsed._replace(query=urlencode(query, safe="*")))


def _errcode(data: dict[str, Any]) -> int | None:
    try:
        return int(data["errcode"])
    except (KeyError, TypeError, ValueError):
        return None


def build_markdown_payload(content: str) -> dict[str, Any]:
    return {"msgtype": "markdown", "markdown": {"content": content}}


@dataclass
class DeliveryResult:
    success: bool
    attempts: int
    retry_count: int
    response: dict[str, Any] = field(default_factory=dict)
    errcode: int | None = None
    error_message: str | None = None

    @property
    def provider_message_id(self) -> str | None:
        msgid = self.response.get("msgid")
        return str(msgid) if msgid else None


class WeComWebhookClient:
    """POSTs markdown to a group-bot webhook; retries linearly (1x, 2x, ... base delay)."""

    def __init__(
        self,
        *,
        max_attempts: int | None = None,
        base_delay_seconds: float | None = None,
        timeout_seconds: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
        http_post: Callable[..., Any] | None = None,
    ):
        self.max_attempts = max_attempts or settings.WECOM_MAX_ATTEMPTS
        self.base_delay_seconds = (
            settings.WECOM_RETRY_BASE_DELAY_SECONDS if base_delay_seconds is None else base_delay_seconds
        )
        self.timeout_seconds = timeout_seconds or settings.WECOM_REQUEST_TIMEOUT_SECONDS
        self._sleep = sleep
        self._http_post = http_post

    def _post(self, url: str, payload: dict[str, Any]):
        post = self._http_post or requests.post
        return post(url, json=payload, timeout=self.timeout_seconds)

    def attempt(self, url: str, content: str) -> dict[str, Any]:
        """One delivery attempt. Returns the provider body or raises a WeComDeliveryError."""
        try:
            response = self._post(url, build_markdown_payload(content))
        except requests.RequestException as exc:
            raise TransientProviderError(f"EXCEPTION: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.status_code < 200 or response.status_code >= 300:
            raise TransientProviderError(
                f"HTTP_{response.status_code}: {response.text[:200]}",
                response=data,
            )

        errcode = _errcode(data)
        if errcode is None:
            raise TransientProviderError("Malformed provider response (no errcode)", response=data)
        if errcode != 0:
            rejected = ProviderRejected(errcode, data.get("errmsg"), response=data)
            if not rejected.is_terminal:
                # Throttling and unknown codes are retried like transient failures.
                raise TransientProviderError(str(rejected), response=data) from rejected
            raise rejected
        return data

    def send_markdown(self, url: str, content: str) -> DeliveryResult:
        failures = 0
        last_response: dict[str, Any] = {}
        last_error: WeComDeliveryError | None = None
        safe_url = mask_webhook_url(url)

        for attempt_no in range(1, self.max_attempts + 1):
            try:
                data = self.attempt(url, content)
            except ProviderRejected as exc:
                failures += 1
                last_response, last_error = exc.response, exc
                logger.error(f"❌ WeCom rejected message to {safe_url}: {exc} (terminal, not retrying)")
                break
            except TransientProviderError as exc:
                failures += 1
                last_response, last_error = exc.response, exc
                if attempt_no < self.max_attempts:
                    delay = self.base_delay_seconds * attempt_no
                    logger.warning(
                        f"🔄 WeCom attempt {attempt_no}/{self.max_attempts} failed: {exc}; retry in {delay}s"
                    )
                    self._sleep(delay)
                else:
                    logger.error(f"❌ WeCom delivery failed after {attempt_no} attempts: {exc}")
                continue

            logger.info(f"✅ WeCom message delivered to {safe_url} on attempt {attempt_no}")
            return DeliveryResult(
                success=True,
                attempts=attempt_no,
                retry_count=failures,
                response=data,
            )

        errcode = _errcode(last_response) or None
        error_message = describe_provider_error(errcode, last_response.get("errmsg"))
        if not error_message and last_error is not None:
            error_message = str(last_error)
        return DeliveryResult(
            success=False,
            attempts=failures,
            retry_count=failures,
            response=last_response,
            errcode=errcode,
            error_message=error_message or "Unknown error",
        )
