"""
scanners/factory.py
-------------------
Pick the scan service for this process.

The choice is made once, from the API key: a non-blank key selects
VirusTotal, anything else the simulated stand-in.

Usage
-----
    from config import settings
    from scanners.factory import create_scan_service

    service = create_scan_service(settings.VIRUSTOTAL_API_KEY)
"""

from __future__ import annotations

import logging

from scanners.base import ScanService
from scanners.simulated import SimulatedScanService
from scanners.virustotal import VirusTotalClient, VirusTotalScanService, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)


def create_scan_service(api_key: str | None, timeout: int = DEFAULT_TIMEOUT) -> ScanService:
    if not api_key or not api_key.strip():
        logger.warning("VIRUSTOTAL_API_KEY is not configured — using the simulated scanner")
        return SimulatedScanService()

    logger.info("Using VirusTotal scanner")
    return VirusTotalScanService(VirusTotalClient(api_key, timeout=timeout))
