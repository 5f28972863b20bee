"""
scanners/base.py
----------------
Shared types for every scan service.

A scan service takes the raw bytes of a file and answers one question: is it
safe to read?  Two implementations exist, ``scanners.virustotal`` (remote,
multi-engine) and ``scanners.simulated`` (local stand-in), selected once by
``scanners.factory.create_scan_service``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class ScanVerdict:
    """
    Outcome of one scan attempt.

    Attributes
    ----------
    is_clean : bool                   – True only when the file is certified safe
    engines  : tuple[str, ...] | None – engine names consulted, None if unknown
    message  : str | None             – scanner's verbose / diagnostic message
    """

    is_clean: bool
    engines:  tuple[str, ...] | None = None
    message:  str | None             = None

    def summary(self) -> str:
        """One-line human-readable summary for logging / display."""
        verdict = "clean" if self.is_clean else "NOT clean"
        engines = ",".join(self.engines) if self.engines else "N/A"
        return f"{verdict}  engines={engines}  message={self.message or '-'}"


class ScanService(Protocol):
    def scan(self, data: bytes) -> ScanVerdict: ...
