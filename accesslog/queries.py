"""
accesslog/queries.py
--------------------
The three questions the analyzer answers about a log file.

Each query reads the file through a shared ``FileIntegrityGate``, parses it
and hands the records to ``accesslog.ranking``.  When the gate returns no
bytes (scan failed or empty file) the query signals the process lifecycle to
exit; the queries never terminate the process themselves.

Public API
----------
    LogQueries(gate, lifecycle, log_path)
        .unique_ips()               -> list[str | None]
        .top_visited_paths(count)   -> list[RankedGroup]
        .top_active_ips(count)      -> list[RankedGroup]
"""

from __future__ import annotations

import logging
from typing import Protocol

from accesslog.gate import FileIntegrityGate
from accesslog.parser import FieldRecord, parse_log_bytes
from accesslog.ranking import RankedGroup, distinct_values, rank

logger = logging.getLogger(__name__)

DEFAULT_TOP = 3


class LifecycleSignal(Protocol):
    def exit(self) -> None: ...


class UnusableLogError(RuntimeError):
    """The log could not be used and the lifecycle exit did not stop us."""


class LogQueries:
    def __init__(
        self,
        gate: FileIntegrityGate,
        lifecycle: LifecycleSignal,
        log_path: str,
    ) -> None:
        self._gate = gate
        self._lifecycle = lifecycle
        self._log_path = log_path

    def unique_ips(self) -> list[str | None]:
        return distinct_values(self._records(), "ip")

    def top_visited_paths(self, count: int = DEFAULT_TOP) -> list[RankedGroup]:
        return rank(self._records(), "path", count)

    def top_active_ips(self, count: int = DEFAULT_TOP) -> list[RankedGroup]:
        return rank(self._records(), "ip", count)

    def _records(self) -> list[FieldRecord]:
        data = self._gate.get_bytes(self._log_path)

        if not data:
            logger.error("Unable to read log file %s — requesting exit", self._log_path)
            self._lifecycle.exit()
            raise UnusableLogError(f"Unable to read log file: {self._log_path}")

        return parse_log_bytes(data)
