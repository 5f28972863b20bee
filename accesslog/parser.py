"""
accesslog/parser.py
-------------------
Turn the raw bytes of an access log into ordered field records.

Common / Combined Log Format pattern:
  $remote_addr $ident $authuser [$time_local] "$method $path $protocol"
  $status $bytes "$http_referer" "$http_user_agent"

Example line:
  192.168.1.1 - frank [10/Oct/2024:13:55:36 -0700] "GET /index.html HTTP/1.1"
  200 2326 "http://example.com/" "Mozilla/5.0 (Windows NT 10.0; Win64; x64)"

Every line that matches produces one ``FieldRecord`` per named field, in
grammar order.  Lines that do not match are NOT discarded: they produce a
single ``FieldRecord(key="raw")`` holding the trimmed line so the caller can
still see what was in the file.  No line can make the whole parse fail.

Public API
----------
    parse_log_bytes(data) -> list[FieldRecord]
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Regex – Common / Combined Log Format
# ---------------------------------------------------------------------------
# Named groups, in the order records are emitted:
#   ip, ident, authuser – whitespace-free tokens
#   timestamp           – text inside the first [...]
#   method              – HTTP verb
#   path                – lazily matched, may contain spaces
#   protocol            – last token inside the quoted request
#   status              – 3-digit HTTP status
#   bytes               – body bytes ("-" is kept verbatim)
#   referrer, agent     – contents of the two trailing quoted strings

ACCESS_LOG_PATTERN = re.compile(
    r'^(?P<ip>\S+)\s+'                                  # remote_addr
    r'(?P<ident>\S+)\s+'                                # ident
    r'(?P<authuser>\S+)\s+'                             # auth user
    r'\[(?P<timestamp>[^\]]+)\]\s+'                     # [timestamp]
    r'"(?P<method>\S+)\s+'                              # "METHOD
    r'(?P<path>[^"]+?)\s+'                              #  /path
    r'(?P<protocol>\S+)"\s+'                            #  HTTP/x.y"
    r'(?P<status>\d{3})\s+'                             # status
    r'(?P<bytes>\S+)\s+'                                # bytes
    r'"(?P<referrer>[^"]*)"\s+'                         # "referrer"
    r'"(?P<agent>[^"]*)"'                               # "user-agent"
)

FIELD_NAMES: tuple[str, ...] = (
    "ip", "ident", "authuser", "timestamp", "method", "path",
    "protocol", "status", "bytes", "referrer", "agent",
)

RAW_KEY = "raw"


@dataclass(frozen=True)
class FieldRecord:
    """
    One extracted field of one log line.

    Attributes
    ----------
    line_number : int        – 1-based position among the non-empty lines
    key         : str        – field name from ``FIELD_NAMES`` or ``"raw"``
    value       : str | None – matched text; ``""`` is never turned into None
    """

    line_number: int
    key:         str
    value:       str | None = None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_log_bytes(data: bytes) -> list[FieldRecord]:
    """
    Parse the full contents of an access log.

    Parameters
    ----------
    data : bytes
        Raw file contents, decoded as UTF-8 (invalid sequences are replaced).

    Returns
    -------
    list[FieldRecord]
        Records for every non-empty line, line 1 first.  A well-formed line
        contributes 11 records, a malformed one contributes a single ``raw``
        record.  Empty input gives an empty list.
    """
    text = data.decode("utf-8", errors="replace")
    lines = [piece for piece in text.split("\n") if piece]

    records: list[FieldRecord] = []
    malformed_count = 0

    for line_number, raw_line in enumerate(lines, start=1):
        line_records = _parse_line(raw_line.strip(), line_number)
        if line_records[0].key == RAW_KEY:
            malformed_count += 1
        records.extend(line_records)

    logger.info(
        "Finished parsing %d bytes: %d lines | %d well-formed | %d malformed",
        len(data), len(lines), len(lines) - malformed_count, malformed_count,
    )
    return records


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _parse_line(line: str, line_number: int) -> list[FieldRecord]:
    """Match *line* against the grammar; fall back to a single raw record."""
    match = ACCESS_LOG_PATTERN.match(line)
    if match is None:
        logger.debug("Line %d: does not match access log format: %r", line_number, line[:120])
        return [FieldRecord(line_number, RAW_KEY, line)]

    return [FieldRecord(line_number, name, match.group(name)) for name in FIELD_NAMES]
