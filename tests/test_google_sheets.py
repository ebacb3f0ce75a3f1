"""Tests for the Google Sheets CSV export connector."""

import asyncio
from unittest.mock import MagicMock, patch

import aiohttp
import pytest

from arena.lib.config import ArenaSettings
from arena.lib.errors import APIError, APITimeoutError, DataFetchError
from integrations.google_sheets import GoogleSheetsExport


def _session_returning(status=200, text="Comercial\nAna\n", error=None):
    """Patchable aiohttp.ClientSession whose GET answers ``status``/``text``.

    With ``error`` set, reading the body raises it instead.
    """
    response = MagicMock()
    response.status = status

    async def _text(*args, **kwargs):
        if error is not None:
            raise error
        return text

    response.text = _text

    get_ctx = MagicMock()
    get_ctx.__aenter__.return_value = response
    get_ctx.__aexit__.return_value = False

    session = MagicMock()
    session.get = MagicMock(return_value=get_ctx)

    session_ctx = MagicMock()
    session_ctx.__aenter__.return_value = session
    session_ctx.__aexit__.return_value = False
    return MagicMock(return_value=session_ctx), session


class TestGoogleSheetsExport:
    def test_export_url_from_sheet_id(self):
        sheets = GoogleSheetsExport(sheet_id="abc", gid="7")
        assert sheets.export_url == "https://docs.google.com/spreadsheets/d/abc/export?format=csv&gid=7"

    def test_explicit_csv_url_wins(self):
        sheets = GoogleSheetsExport(sheet_id="abc", csv_url="https://example.test/data.csv")
        assert sheets.export_url == "https://example.test/data.csv"

    def test_fresh_url_adds_cache_buster(self):
        assert "&t=" in GoogleSheetsExport(sheet_id="abc")._fresh_url()
        assert "?t=" in GoogleSheetsExport(csv_url="https://example.test/data.csv")._fresh_url()

    def test_not_configured_without_source(self):
        assert GoogleSheetsExport().is_configured is False

    def test_from_settings(self):
        settings = ArenaSettings(sheet_id="xyz", sheet_gid="3", http_timeout_seconds=5.0)
        sheets = GoogleSheetsExport.from_settings(settings)
        assert sheets.sheet_id == "xyz"
        assert sheets.gid == "3"
        assert sheets.timeout == 5.0

    def test_status_returns_correct_structure(self):
        status = GoogleSheetsExport(sheet_id="abc").get_status()
        assert status["name"] == "Google Sheets"
        assert status["configured"] is True
        assert "csv_export" in status["features"]

    @pytest.mark.asyncio
    async def test_fetch_unconfigured_raises(self):
        with pytest.raises(DataFetchError):
            await GoogleSheetsExport().fetch_csv()

    @pytest.mark.asyncio
    async def test_fetch_returns_body(self):
        factory, session = _session_returning(200, "Comercial\nAna\n")
        with patch("integrations.google_sheets.aiohttp.ClientSession", factory):
            body = await GoogleSheetsExport(sheet_id="abc").fetch_csv()
        assert body == "Comercial\nAna\n"
        url = session.get.call_args[0][0]
        assert url.startswith("https://docs.google.com/spreadsheets/d/abc/export?format=csv&gid=0&t=")

    @pytest.mark.asyncio
    async def test_non_2xx_raises_api_error(self):
        factory, _ = _session_returning(404, "Not found")
        with patch("integrations.google_sheets.aiohttp.ClientSession", factory):
            with pytest.raises(APIError) as exc:
                await GoogleSheetsExport(sheet_id="abc").fetch_csv()
        assert exc.value.status_code == 404

    @pytest.mark.asyncio
    async def test_timeout_raises_api_timeout(self):
        factory = MagicMock(side_effect=asyncio.TimeoutError())
        with patch("integrations.google_sheets.aiohttp.ClientSession", factory):
            with pytest.raises(APITimeoutError):
                await GoogleSheetsExport(sheet_id="abc", timeout=2.0).fetch_csv()

    @pytest.mark.asyncio
    async def test_client_error_raises_fetch_error(self):
        factory = MagicMock(side_effect=aiohttp.ClientConnectionError("refused"))
        with patch("integrations.google_sheets.aiohttp.ClientSession", factory):
            with pytest.raises(DataFetchError):
                await GoogleSheetsExport(sheet_id="abc").fetch_csv()

    @pytest.mark.asyncio
    async def test_undecodable_body_raises_fetch_error(self):
        bad_body = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        factory, _ = _session_returning(200, error=bad_body)
        with patch("integrations.google_sheets.aiohttp.ClientSession", factory):
            with pytest.raises(DataFetchError):
                await GoogleSheetsExport(sheet_id="abc").fetch_csv()
