"""
Google Sheets CSV Export
=========================

Read-only connector for a sheet shared as "anyone with the link". Pulls the
first tab (or the configured gid) through the public CSV export endpoint;
no service account is involved.

Setup:
1. Share the sheet so anyone with the link can view it
2. Set SHEET_ID (and optionally SHEET_GID) in .env, or SHEET_CSV_URL to
   point at any CSV export URL directly
"""

import asyncio
import time
from typing import Any, Dict
from urllib.parse import urlencode

import aiohttp

from arena.lib.errors import APIError, APITimeoutError, DataFetchError
from arena.lib.logger import setup_logger

logger = setup_logger("google_sheets")

SHEETS_EXPORT_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/export"


class GoogleSheetsExport:
    """Fetches the raw CSV text of one sheet tab."""

    def __init__(self, sheet_id: str = None, gid: str = "0",
                 csv_url: str = None, timeout: float = 30.0):
        self.sheet_id = sheet_id
        self.gid = gid
        self.csv_url = csv_url
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "GoogleSheetsExport":
        return cls(
            sheet_id=settings.sheet_id,
            gid=settings.sheet_gid,
            csv_url=settings.sheet_csv_url,
            timeout=settings.http_timeout_seconds,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.csv_url or self.sheet_id)

    @property
    def export_url(self) -> str:
        if self.csv_url:
            return self.csv_url
        base = SHEETS_EXPORT_URL.format(sheet_id=self.sheet_id)
        return f"{base}?{urlencode({'format': 'csv', 'gid': self.gid})}"

    def _fresh_url(self) -> str:
        """Export URL with a cache-buster so every poll sees a fresh export."""
        separator = "&" if "?" in self.export_url else "?"
        return f"{self.export_url}{separator}t={int(time.time() * 1000)}"

    async def fetch_csv(self) -> str:
        """GET the export and return its text.

        Raises:
            APITimeoutError: the transport timed out.
            APIError: the endpoint answered with a non-2xx status.
            DataFetchError: any other transport failure, or a body that is
                not UTF-8.
        """
        if not self.is_configured:
            raise DataFetchError("Sheet export is not configured: set SHEET_ID or SHEET_CSV_URL")

        url = self._fresh_url()
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        start = time.time()
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, allow_redirects=True) as resp:
                    if resp.status < 200 or resp.status >= 300:
                        text = await resp.text(errors="replace")
                        raise APIError(
                            f"Sheet export returned {resp.status}: {text[:200]}",
                            status_code=resp.status, url=self.export_url,
                        )
                    body = await resp.text(encoding="utf-8")
        except asyncio.TimeoutError:
            raise APITimeoutError(self.export_url, self.timeout)
        except aiohttp.ClientError as e:
            raise DataFetchError(f"Sheet export request failed: {e}", source=self.export_url)
        except UnicodeDecodeError as e:
            raise DataFetchError(f"Sheet export is not valid UTF-8: {e}", source=self.export_url)

        logger.info(
            "GET %s — %d bytes in %.2fs", self.export_url, len(body), time.time() - start,
        )
        return body

    def get_status(self) -> Dict[str, Any]:
        return {
            "name": "Google Sheets",
            "configured": self.is_configured,
            "url": self.export_url if self.is_configured else None,
            "features": ["csv_export"],
        }
