"""
config.py
---------
Runtime settings for the access-log analyzer.

VIRUSTOTAL_API_KEY decides which scanner guards the log file: with a key,
every changed file is uploaded to VirusTotal before it is parsed; without
one, the simulated scanner is used and a warning is logged.  LOG_FILE and
TOP_N are the CLI defaults for --log and --top.

Values come from the environment, or from a .env file next to this module.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Optional; a missing .env is not an error
_ENV_FILE = Path(__file__).parent / ".env"
load_dotenv(_ENV_FILE)


@dataclass(frozen=True)
class _Settings:
    """
    Immutable snapshot of all configuration values read at import time.

    Attributes
    ----------
    VIRUSTOTAL_API_KEY  : str   – VirusTotal public API key
                                  https://www.virustotal.com/gui/my-apikey
                                  Blank → the simulated scanner is used.
    VIRUSTOTAL_TIMEOUT  : int   – seconds per HTTP request (default 30)

    LOG_FILE            : str   – access log analysed when --log is omitted
    TOP_N               : int   – rank tiers shown by top-N queries (default 3)
    """

    # ── VirusTotal ────────────────────────────────────────────────────────
    VIRUSTOTAL_API_KEY:   str = field(default="")
    VIRUSTOTAL_TIMEOUT:   int = field(default=30)

    # ── Analysis ──────────────────────────────────────────────────────────
    LOG_FILE:             str = field(default="programming-task-example-data.log")
    TOP_N:                int = field(default=3)

    # ── Factory: read from environment ───────────────────────────────────
    @classmethod
    def from_env(cls) -> "_Settings":
        return cls(
            VIRUSTOTAL_API_KEY = os.getenv("VIRUSTOTAL_API_KEY", "").strip(),
            VIRUSTOTAL_TIMEOUT = int(os.getenv("VIRUSTOTAL_TIMEOUT", "30")),
            LOG_FILE           = os.getenv("LOG_FILE", "programming-task-example-data.log").strip(),
            TOP_N              = int(os.getenv("TOP_N", "3")),
        )

    # ── Helpers ───────────────────────────────────────────────────────────
    def is_virustotal_configured(self) -> bool:
        return bool(self.VIRUSTOTAL_API_KEY)


# Module-level singleton, import this in other modules
settings = _Settings.from_env()
