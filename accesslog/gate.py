"""
accesslog/gate.py
-----------------
Read a log file only after it has been certified clean.

``FileIntegrityGate.get_bytes(path)`` reads the file, hashes it with SHA-256
and compares the digest with the last file that passed a scan.  An unchanged
file is returned straight from the cache; anything else goes through the scan
service first.

    read ─► sha256 ─► same as cached? ── yes ─► cached bytes
                              │
                              no ─► scan ─► clean? ── yes ─► cache + bytes
                                               └────── no ─► b""  (cache kept)

An empty return value means "do not use this file"; the caller decides how
to shut down.

Public API
----------
    read_all_bytes(path)                 -> bytes
    sha256_hex(data)                     -> str
    FileIntegrityGate(scan_service).get_bytes(path) -> bytes
"""

from __future__ import annotations

import hashlib
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from scanners.base import ScanService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedFile:
    content_hash: str
    data:         bytes


# ─────────────────────────────────────────────────────────────────────────────
# File source
# ─────────────────────────────────────────────────────────────────────────────

def read_all_bytes(path: str) -> bytes:
    """
    Read the whole file at *path*.

    Raises
    ------
    FileNotFoundError – the path does not exist, is not a regular file, or
                        cannot be read.
    """
    file_path = Path(path)

    if not file_path.exists():
        raise FileNotFoundError(f"Log file not found: {path}")
    if not file_path.is_file():
        raise FileNotFoundError(f"Path is not a regular file: {path}")

    try:
        return file_path.read_bytes()
    except OSError as exc:
        raise FileNotFoundError(f"Cannot read log file {path}: {exc}") from exc


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


# ─────────────────────────────────────────────────────────────────────────────
# Gate
# ─────────────────────────────────────────────────────────────────────────────

class FileIntegrityGate:
    """
    Scan-before-use file reader with a single-entry content cache.

    One instance is meant to be shared by every query in the process; the
    cache check, scan and cache update run under the instance lock.
    """

    def __init__(
        self,
        scan_service: ScanService,
        source: Callable[[str], bytes] = read_all_bytes,
    ) -> None:
        self._scan_service = scan_service
        self._source = source
        self._lock = threading.Lock()
        self._cached: CachedFile | None = None

    @property
    def cached_hash(self) -> str | None:
        return self._cached.content_hash if self._cached else None

    def get_bytes(self, path: str) -> bytes:
        logger.info("Reading file: %s", path)
        data = self._source(path)

        with self._lock:
            content_hash = sha256_hex(data)

            if self._cached is not None and self._cached.content_hash == content_hash:
                logger.info("Previously passed, no changes detected (sha256=%s)", content_hash[:12])
                return self._cached.data

            logger.info("Scanning %s (%d bytes) for viruses…", path, len(data))
            verdict = self._scan_service.scan(data)
            logger.info("Scan completed: %s", verdict.summary())

            if not verdict.is_clean:
                logger.error("File %s failed the virus scan: %s", path, verdict.message or "no details")
                return b""

            self._cached = CachedFile(content_hash, data)
            return data
