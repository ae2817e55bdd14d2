"""
WhatsApp Messenger Gateway - Maytapi REST API.

All outbound chat messages go through a Messenger:

    send(address, text) -> GatewayResult, raises DeliveryError on failure

``MaytapiGateway`` posts ``{to_number, type: "text", message}`` to the
configured send-message URL with the ``x-maytapi-key`` header. A send only
counts as delivered when the response is 2xx *and* its body reports
``success: true``.

  - No retries: delivery is best-effort, at most once per call
  - Timeout: 30 s (MESSENGER_TIMEOUT)
  - Long messages are cut and suffixed with a truncation note
  - Circuit breaker: ≥5 failures in 60 s → 30 s pause, sends fail fast

``LogOnlyMessenger`` stands in when MAYTAPI_API_URL / MAYTAPI_API_KEY are
not configured (development, tests): it logs the message and reports
success without touching the network.

Testability: pass a mock `session` to MaytapiGateway() in tests instead of
letting it create a real requests.Session internally.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

import requests

from salesflow.core.exceptions import DeliveryError
from salesflow.utils.phone import normalize_phone

logger = logging.getLogger(__name__)

# ── Circuit breaker constants ──────────────────────────────────────────────
_CB_FAILURE_THRESHOLD = 5          # failures within window before opening
_CB_WINDOW_SECONDS = 60            # failure counting window (seconds)
_CB_OPEN_DURATION_SECONDS = 30     # how long circuit stays open

_DEFAULT_TIMEOUT = 30
_DEFAULT_MAX_LENGTH = 4096
_TRUNCATION_NOTE = "\n\n[Message truncated due to length]"
_TRUNCATION_MARGIN = 50


class GatewayResult:
    """Structured return value of a successful send.

    Attributes:
        ok:             True when the provider accepted the message.
        status_code:    HTTP status code (None in log-only mode).
        data:           Parsed JSON response body, else None.
        duration_ms:    Round-trip latency in milliseconds.
        truncated:      True if the text was cut to fit the length limit.
    """

    def __init__(
        self,
        ok: bool,
        status_code: int | None,
        data: dict | None,
        duration_ms: int,
        truncated: bool = False,
    ) -> None:
        self.ok = ok
        self.status_code = status_code
        self.data = data
        self.duration_ms = duration_ms
        self.truncated = truncated


class Messenger(Protocol):
    def send(self, address: str, text: str) -> GatewayResult: ...


def truncate_message(text: str, max_length: int = _DEFAULT_MAX_LENGTH) -> tuple[str, bool]:
    """Cut *text* to fit *max_length*, appending the truncation note."""
    if len(text) <= max_length:
        return text, False
    return text[: max_length - _TRUNCATION_MARGIN] + _TRUNCATION_NOTE, True


class MaytapiGateway:
    """Maytapi WhatsApp API gateway.

    Usage:
        gateway = MaytapiGateway(api_url, api_key)
        gateway.send("8801712345678", "Hello")
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        session: requests.Session | None = None,
        timeout: int = _DEFAULT_TIMEOUT,
        max_length: int = _DEFAULT_MAX_LENGTH,
    ) -> None:
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout
        self.max_length = max_length
        # Inject custom session for testing; create real one lazily otherwise.
        self._session: requests.Session | None = session
        self._cb_state: dict[str, Any] = {"failures": [], "open_until": None}

    # ── HTTP session ─────────────────────────────────────────────────────────

    @property
    def session(self) -> requests.Session:
        """Return (or lazily create) the requests.Session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    # ── Circuit breaker ───────────────────────────────────────────────────────

    def _circuit_closed(self) -> bool:
        """Return True if the circuit allows calls; False if open (paused)."""
        state = self._cb_state
        now = datetime.now(timezone.utc)

        if state["open_until"] and now < state["open_until"]:
            return False

        window_start = now - timedelta(seconds=_CB_WINDOW_SECONDS)
        state["failures"] = [f for f in state["failures"] if f >= window_start]

        if len(state["failures"]) >= _CB_FAILURE_THRESHOLD:
            state["open_until"] = now + timedelta(seconds=_CB_OPEN_DURATION_SECONDS)
            logger.error(
                "Messenger circuit opened: %d failures in %ds window",
                len(state["failures"]),
                _CB_WINDOW_SECONDS,
            )
            return False

        return True

    def _record_failure(self) -> None:
        self._cb_state["failures"].append(datetime.now(timezone.utc))

    def _record_success(self) -> None:
        """On success, reset failure history and close the circuit."""
        self._cb_state["failures"].clear()
        self._cb_state["open_until"] = None

    # ── Send ─────────────────────────────────────────────────────────────────

    def _fail(self, address: str, reason: str, status_code: int | None = None) -> DeliveryError:
        self._record_failure()
        logger.warning("WhatsApp send failed to=%s status=%s reason=%s", address, status_code, reason,
                       extra={"address": address})
        return DeliveryError(address, reason, status_code)

    def send(self, address: str, text: str) -> GatewayResult:
        """Send one text message. Raises DeliveryError on any failure."""
        to_number = normalize_phone(address)
        if not to_number:
            raise DeliveryError(str(address), "empty address")
        if not self._circuit_closed():
            raise DeliveryError(to_number, "circuit breaker open; messenger calls suspended")

        message, truncated = truncate_message(text, self.max_length)
        if truncated:
            logger.warning("Message to %s truncated from %d chars", to_number, len(text))

        payload = {"to_number": to_number, "type": "text", "message": message}
        headers = {"Content-Type": "application/json", "x-maytapi-key": self.api_key}

        t0 = time.perf_counter()
        try:
            resp = self.session.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
        except requests.Timeout:
            raise self._fail(to_number, f"Request timed out after {self.timeout}s") from None
        except requests.RequestException as exc:
            raise self._fail(to_number, str(exc)[:500]) from exc
        duration_ms = int((time.perf_counter() - t0) * 1000)

        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            data = {}

        if not resp.ok:
            raise self._fail(to_number, f"HTTP {resp.status_code}: {resp.text[:500]}", resp.status_code)
        if not isinstance(data, dict) or data.get("success") is not True:
            reason = data.get("message", "provider reported failure") if isinstance(data, dict) else "bad response"
            raise self._fail(to_number, str(reason)[:500], resp.status_code)

        self._record_success()
        logger.info("WhatsApp message sent to=%s in %dms", to_number, duration_ms,
                    extra={"address": to_number, "duration_ms": duration_ms})
        return GatewayResult(True, resp.status_code, data, duration_ms, truncated)


class LogOnlyMessenger:
    """Messenger used when no transport is configured: logs, never sends."""

    def __init__(self, max_length: int = _DEFAULT_MAX_LENGTH) -> None:
        self.max_length = max_length

    def send(self, address: str, text: str) -> GatewayResult:
        to_number = normalize_phone(address)
        if not to_number:
            raise DeliveryError(str(address), "empty address")
        message, truncated = truncate_message(text, self.max_length)
        logger.info("[LOG-ONLY] WhatsApp to=%s (%d chars): %s", to_number, len(message), message[:120])
        return GatewayResult(True, None, None, 0, truncated)


def build_messenger(app_config: Any) -> MaytapiGateway | LogOnlyMessenger:
    """Pick the transport from Flask config; log-only unless URL and key are set."""
    api_url = app_config.get("MAYTAPI_API_URL")
    api_key = app_config.get("MAYTAPI_API_KEY")
    max_length = app_config.get("MESSENGER_MAX_LENGTH", _DEFAULT_MAX_LENGTH)
    if not api_url or not api_key:
        logger.info("Maytapi not configured; messages will be logged only")
        return LogOnlyMessenger(max_length=max_length)
    return MaytapiGateway(
        api_url,
        api_key,
        timeout=app_config.get("MESSENGER_TIMEOUT", _DEFAULT_TIMEOUT),
        max_length=max_length,
    )
