"""
scanners/simulated.py
---------------------
Local stand-in for the remote scanner, used when no VirusTotal API key is
configured.

Every call sleeps briefly to mimic a network round-trip and then reports the
file clean four times out of five.  The verdict message makes it obvious the
result is not authoritative.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Callable

from scanners.base import ScanVerdict

logger = logging.getLogger(__name__)

ENGINE_NAME       = "DummyEngine"
RESULT_MESSAGE    = "NOT A REAL SCAN RESULT"
CLEAN_PROBABILITY = 0.8
SIMULATED_LATENCY = 0.08  # seconds


class SimulatedScanService:
    """Scan service that flips a weighted coin instead of scanning."""

    def __init__(
        self,
        rng: Callable[[], float] = random.random,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._rng = rng
        self._sleep = sleep

    def scan(self, data: bytes) -> ScanVerdict:
        self._sleep(SIMULATED_LATENCY)
        is_clean = self._rng() < CLEAN_PROBABILITY
        logger.warning(
            "Simulated scan of %d bytes → %s (set VIRUSTOTAL_API_KEY for a real scan)",
            len(data), "clean" if is_clean else "NOT clean",
        )
        return ScanVerdict(is_clean, (ENGINE_NAME,), RESULT_MESSAGE)
