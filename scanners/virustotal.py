"""
scanners/virustotal.py
----------------------
Scan file contents with the VirusTotal v2 public API.

A VirusTotal scan is asynchronous: the upload returns a ``scan_id`` and the
report only becomes available once the engines have finished.  ``ScanPoller``
drives one scan through these states::

    SUBMITTED ──► POLLING ──► CONFIRMED   response_code 1 (clean iff positives == 0)
                         ├──► TIMED_OUT   attempts exhausted → NOT clean
                         ├──► CANCELLED   cancel event set   → NOT clean
                         └──► ERRORED     unexpected failure → NOT clean

Every failure mode yields a ``ScanVerdict(is_clean=False, ...)``; scanner
instability never propagates to the caller, and an unknown outcome is never
treated as safe.

Public API
----------
    VirusTotalClient(api_key)                 – thin ``requests`` wrapper
    ScanPoller(client).run(data, filename)    -> ScanVerdict
    VirusTotalScanService(client).scan(data)  -> ScanVerdict
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime
from enum import Enum
from typing import Callable

import requests

from scanners.base import ScanVerdict

logger = logging.getLogger(__name__)

# ── VirusTotal v2 endpoints ──────────────────────────────────────────────────
_SCAN_URL   = "https://www.virustotal.com/vtapi/v2/file/scan"
_REPORT_URL = "https://www.virustotal.com/vtapi/v2/file/report"
DEFAULT_TIMEOUT = 30  # seconds per request

# ``response_code`` values of the report endpoint
RESPONSE_NOT_FOUND = 0
RESPONSE_DONE      = 1
RESPONSE_QUEUED    = -2

# ── Polling budget ───────────────────────────────────────────────────────────
MAX_ATTEMPTS      = 10
INITIAL_DELAY     = 3.0   # seconds between upload and first poll
MAX_BACKOFF       = 15.0  # seconds
MAX_FILENAME_LEN  = 255

TIMED_OUT_MESSAGE = "Virus scan timed out."
CANCELLED_MESSAGE = "Virus scan cancelled."


class VirusTotalError(Exception):
    """The API answered, but not with something usable."""


class ScanPending(VirusTotalError):
    """The report for a scan_id is not indexed yet."""


class PollState(str, Enum):
    SUBMITTED = "SUBMITTED"
    POLLING   = "POLLING"
    CONFIRMED = "CONFIRMED"
    TIMED_OUT = "TIMED_OUT"
    CANCELLED = "CANCELLED"
    ERRORED   = "ERRORED"


# ─────────────────────────────────────────────────────────────────────────────
# HTTP client
# ─────────────────────────────────────────────────────────────────────────────

class VirusTotalClient:
    """Upload files and fetch reports.  Raises on every failure."""

    def __init__(self, api_key: str, timeout: int = DEFAULT_TIMEOUT) -> None:
        if not api_key or not api_key.strip():
            raise ValueError("VirusTotal API key cannot be null or empty")
        self._api_key = api_key.strip()
        self._timeout = timeout

    def submit(self, data: bytes, filename: str) -> str:
        """Upload *data* for scanning and return its ``scan_id``."""
        resp = requests.post(
            _SCAN_URL,
            data={"apikey": self._api_key},
            files={"file": (filename, data)},
            timeout=self._timeout,
        )
        body = _parse_response(resp)

        scan_id = body.get("scan_id")
        if not scan_id:
            raise VirusTotalError(
                f"upload rejected: {body.get('verbose_msg') or 'no scan_id returned'}"
            )
        logger.info("VirusTotal: uploaded %r (%d bytes) → scan_id=%s", filename, len(data), scan_id)
        return scan_id

    def get_report(self, scan_id: str) -> dict:
        """
        Fetch the report for *scan_id*.

        Returns the JSON body (``response_code`` is RESPONSE_DONE or
        RESPONSE_QUEUED).  Raises ``ScanPending`` while VirusTotal does not
        know the resource yet.
        """
        resp = requests.get(
            _REPORT_URL,
            params={"apikey": self._api_key, "resource": scan_id},
            timeout=self._timeout,
        )
        body = _parse_response(resp)

        if body.get("response_code") == RESPONSE_NOT_FOUND:
            raise ScanPending(body.get("verbose_msg") or f"report for {scan_id} not available yet")
        return body


def _parse_response(resp: requests.Response) -> dict:
    """
    Turn a raw HTTP response into a JSON dict or raise.

    VirusTotal v2 signals rate limiting with an empty HTTP 204 and a bad key
    with HTTP 403.
    """
    if resp.status_code == 204:
        raise VirusTotalError("rate limit exceeded (HTTP 204) — public API quota reached")
    if resp.status_code == 403:
        raise VirusTotalError("invalid API key (HTTP 403) — check VIRUSTOTAL_API_KEY")

    resp.raise_for_status()

    try:
        body = resp.json()
    except ValueError as exc:
        raise VirusTotalError(f"non-JSON response (status={resp.status_code})") from exc

    if not isinstance(body, dict):
        raise VirusTotalError(f"unexpected response body: {body!r}")
    return body


# ─────────────────────────────────────────────────────────────────────────────
# Poller
# ─────────────────────────────────────────────────────────────────────────────

class ScanPoller:
    """
    Drive one upload-then-poll cycle to a verdict.

    Parameters
    ----------
    client        : VirusTotalClient
    max_attempts  : int                 – report queries before giving up
    initial_delay : float               – seconds to wait after the upload
    max_backoff   : float               – cap on the inter-attempt delay
    sleep         : Callable[[float]]   – waits when no cancel event is given
    cancel_event  : threading.Event     – optional; when set, the next wait
                                          ends the poll as CANCELLED

    A poller is single-use: ``state`` reflects the last ``run``.
    """

    def __init__(
        self,
        client: VirusTotalClient,
        max_attempts: int = MAX_ATTEMPTS,
        initial_delay: float = INITIAL_DELAY,
        max_backoff: float = MAX_BACKOFF,
        sleep: Callable[[float], None] = time.sleep,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self._client = client
        self._max_attempts = max_attempts
        self._initial_delay = initial_delay
        self._max_backoff = max_backoff
        self._sleep = sleep
        self._cancel_event = cancel_event

        self.state = PollState.SUBMITTED
        self.attempts = 0

    def backoff(self, attempt: int) -> float:
        """Delay after 0-based *attempt*: 2, 4, 8, then capped."""
        return min(2.0 ** (attempt + 1), self._max_backoff)

    def run(self, data: bytes, filename: str) -> ScanVerdict:
        try:
            if len(filename) > MAX_FILENAME_LEN:
                raise ValueError(
                    f"Filename cannot be longer than {MAX_FILENAME_LEN} characters "
                    f"(got {len(filename)})."
                )

            scan_id = self._client.submit(data, filename)
            if not self._wait(self._initial_delay):
                return self._cancelled()

            self.state = PollState.POLLING
            return self._poll(scan_id)

        except Exception as exc:              # noqa: BLE001
            self.state = PollState.ERRORED
            logger.error("VirusTotal scan failed: %s", exc)
            return ScanVerdict(False, None, f"VirusTotal scan failed: {exc}")

    def _poll(self, scan_id: str) -> ScanVerdict:
        for attempt in range(self._max_attempts):
            self.attempts = attempt + 1
            try:
                report = self._client.get_report(scan_id)
            except (requests.exceptions.RequestException, VirusTotalError) as exc:
                logger.debug("VirusTotal: attempt %d/%d for %s — %s",
                             self.attempts, self._max_attempts, scan_id, exc)
            else:
                code = report.get("response_code")
                if code == RESPONSE_DONE:
                    verdict = _verdict_from_report(report)
                    self.state = PollState.CONFIRMED
                    return verdict
                logger.debug("VirusTotal: attempt %d/%d for %s — response_code=%r, not done",
                             self.attempts, self._max_attempts, scan_id, code)

            if attempt + 1 < self._max_attempts and not self._wait(self.backoff(attempt)):
                return self._cancelled()

        self.state = PollState.TIMED_OUT
        logger.warning("VirusTotal: no report for %s after %d attempts", scan_id, self._max_attempts)
        return ScanVerdict(False, None, TIMED_OUT_MESSAGE)

    def _wait(self, seconds: float) -> bool:
        """Wait *seconds*; False when the cancel event fired."""
        if self._cancel_event is None:
            self._sleep(seconds)
            return True
        return not self._cancel_event.wait(seconds)

    def _cancelled(self) -> ScanVerdict:
        self.state = PollState.CANCELLED
        logger.warning("VirusTotal: scan cancelled after %d attempt(s)", self.attempts)
        return ScanVerdict(False, None, CANCELLED_MESSAGE)


def _verdict_from_report(report: dict) -> ScanVerdict:
    positives = report.get("positives")
    if isinstance(positives, bool) or not isinstance(positives, int):
        raise VirusTotalError(f"Finished report has no usable positives count: {positives!r}")
    engines = tuple(report.get("scans") or {})
    logger.info(
        "VirusTotal: report ready — %d/%d engines flagged the file",
        positives, len(engines),
    )
    return ScanVerdict(positives == 0, engines, report.get("verbose_msg"))


# ─────────────────────────────────────────────────────────────────────────────
# Scan service
# ─────────────────────────────────────────────────────────────────────────────

class VirusTotalScanService:
    """``ScanService`` backed by VirusTotal.  One ``ScanPoller`` per scan."""

    def __init__(
        self,
        client: VirusTotalClient,
        poller_factory: Callable[[VirusTotalClient], ScanPoller] = ScanPoller,
    ) -> None:
        self._client = client
        self._poller_factory = poller_factory

    def scan(self, data: bytes, filename: str | None = None) -> ScanVerdict:
        if data is None:
            raise FileNotFoundError("Empty bytes passed for virus scan.")

        if not filename:
            filename = f"{datetime.now():%Y%m%d%H%M%S}_scan.bin"

        poller = self._poller_factory(self._client)
        verdict = poller.run(data, filename)
        logger.debug("VirusTotal: %s finished in state %s", filename, poller.state.value)
        return verdict
