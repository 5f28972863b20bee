"""
tests/test_gate.py
------------------
Unit tests cho accesslog/gate.py — FileIntegrityGate, read_all_bytes().

Quy ước:
- Scan service là một stub nhỏ (FakeScanner) đếm số lần scan() được gọi,
  không có network call nào.
- File thật được ghi bằng ``tempfile`` và xoá trong ``tearDown``.
- Mỗi TestCase kiểm tra một nhánh của luồng read → hash → cache → scan.

Chạy:
    python -m pytest tests/test_gate.py -v
    python tests/test_gate.py
"""

import hashlib
import os
import sys
import tempfile
import threading
import time
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from accesslog.gate import FileIntegrityGate, read_all_bytes, sha256_hex
from scanners.base import ScanVerdict

# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

_CONTENT = b'1.1.1.1 - - [10/Oct/2024:13:55:36 +0000] "GET / HTTP/1.1" 200 1 "-" "-"\n'


class FakeScanner:
    """Trả về lần lượt các verdict đã định sẵn, ghi lại bytes đã scan."""

    def __init__(self, *verdicts: bool, delay: float = 0.0):
        self._verdicts = list(verdicts) or [True]
        self._delay = delay
        self.scanned: list[bytes] = []

    @property
    def calls(self) -> int:
        return len(self.scanned)

    def scan(self, data: bytes) -> ScanVerdict:
        if self._delay:
            time.sleep(self._delay)
        self.scanned.append(data)
        is_clean = self._verdicts[min(len(self.scanned), len(self._verdicts)) - 1]
        return ScanVerdict(is_clean, ("FakeEngine",), "fake")


class _TempFileCase(unittest.TestCase):

    def setUp(self):
        fd, self.path = tempfile.mkstemp(suffix=".log")
        os.close(fd)
        self._write(_CONTENT)

    def tearDown(self):
        os.unlink(self.path)

    def _write(self, data: bytes) -> None:
        with open(self.path, "wb") as fh:
            fh.write(data)


# ─────────────────────────────────────────────────────────────────────────────
# 1. read_all_bytes / sha256_hex
# ─────────────────────────────────────────────────────────────────────────────

class TestReadAllBytes(_TempFileCase):
    """read_all_bytes() trả nguyên bytes, raise FileNotFoundError khi lỗi."""

    def test_reads_exact_bytes(self):
        self.assertEqual(read_all_bytes(self.path), _CONTENT)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            read_all_bytes("/no/such/path/access.log")

    def test_directory_is_not_found(self):
        with self.assertRaises(FileNotFoundError):
            read_all_bytes(tempfile.gettempdir())

    def test_sha256_hex(self):
        self.assertEqual(sha256_hex(b"abc"), hashlib.sha256(b"abc").hexdigest())
        self.assertEqual(len(sha256_hex(b"")), 64)


# ─────────────────────────────────────────────────────────────────────────────
# 2. Clean scan + cache
# ─────────────────────────────────────────────────────────────────────────────

class TestCleanScanAndCache(_TempFileCase):
    """File sạch được cache; file không đổi thì không scan lại."""

    def test_clean_file_returns_bytes(self):
        gate = FileIntegrityGate(FakeScanner(True))
        self.assertEqual(gate.get_bytes(self.path), _CONTENT)

    def test_hash_cached_after_clean_scan(self):
        gate = FileIntegrityGate(FakeScanner(True))
        self.assertIsNone(gate.cached_hash)
        gate.get_bytes(self.path)
        self.assertEqual(gate.cached_hash, sha256_hex(_CONTENT))

    def test_unchanged_file_scanned_once(self):
        scanner = FakeScanner(True)
        gate = FileIntegrityGate(scanner)
        first  = gate.get_bytes(self.path)
        second = gate.get_bytes(self.path)
        self.assertEqual(scanner.calls, 1)
        self.assertEqual(first, second)

    def test_changed_file_scanned_again(self):
        scanner = FakeScanner(True)
        gate = FileIntegrityGate(scanner)
        gate.get_bytes(self.path)
        self._write(_CONTENT * 2)
        self.assertEqual(gate.get_bytes(self.path), _CONTENT * 2)
        self.assertEqual(scanner.calls, 2)
        self.assertEqual(gate.cached_hash, sha256_hex(_CONTENT * 2))

    def test_file_source_injected(self):
        gate = FileIntegrityGate(FakeScanner(True), source=lambda path: b"from-source")
        self.assertEqual(gate.get_bytes("ignored"), b"from-source")


# ─────────────────────────────────────────────────────────────────────────────
# 3. Unsafe scan
# ─────────────────────────────────────────────────────────────────────────────

class TestUnsafeScan(_TempFileCase):
    """Scan thất bại → b"" và cache giữ nguyên."""

    def test_unsafe_returns_empty(self):
        gate = FileIntegrityGate(FakeScanner(False))
        self.assertEqual(gate.get_bytes(self.path), b"")

    def test_verdict_summary_logged(self):
        gate = FileIntegrityGate(FakeScanner(False))
        with self.assertLogs("accesslog.gate", level="INFO") as logs:
            gate.get_bytes(self.path)
        self.assertIn("Scan completed: NOT clean  engines=FakeEngine  message=fake", "\n".join(logs.output))

    def test_unsafe_not_cached(self):
        scanner = FakeScanner(False)
        gate = FileIntegrityGate(scanner)
        gate.get_bytes(self.path)
        gate.get_bytes(self.path)
        self.assertIsNone(gate.cached_hash)
        self.assertEqual(scanner.calls, 2)

    def test_unsafe_keeps_previous_entry(self):
        scanner = FakeScanner(True, False)
        gate = FileIntegrityGate(scanner)
        gate.get_bytes(self.path)
        self._write(b"changed\n")
        self.assertEqual(gate.get_bytes(self.path), b"")
        self.assertEqual(gate.cached_hash, sha256_hex(_CONTENT))

    def test_original_content_still_served_from_cache(self):
        scanner = FakeScanner(True, False)
        gate = FileIntegrityGate(scanner)
        gate.get_bytes(self.path)
        self._write(b"changed\n")
        gate.get_bytes(self.path)
        self._write(_CONTENT)
        self.assertEqual(gate.get_bytes(self.path), _CONTENT)
        self.assertEqual(scanner.calls, 2)

    def test_missing_file_propagates(self):
        scanner = FakeScanner(True)
        gate = FileIntegrityGate(scanner)
        with self.assertRaises(FileNotFoundError):
            gate.get_bytes("/no/such/path/access.log")
        self.assertEqual(scanner.calls, 0)


# ─────────────────────────────────────────────────────────────────────────────
# 4. Concurrency
# ─────────────────────────────────────────────────────────────────────────────

class TestConcurrentCallers(_TempFileCase):
    """Nhiều thread cùng đọc một file → chỉ scan đúng một lần."""

    def test_single_scan_under_contention(self):
        scanner = FakeScanner(True, delay=0.05)
        gate = FileIntegrityGate(scanner)
        results: list[bytes] = []

        threads = [threading.Thread(target=lambda: results.append(gate.get_bytes(self.path)))
                   for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(scanner.calls, 1)
        self.assertEqual(results, [_CONTENT] * 5)


if __name__ == "__main__":
    unittest.main(verbosity=2)
