"""Tests for CSV parsing, snapshot building and the refresh poller."""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from arena.fetcher import SnapshotPoller, SnapshotStore, build_snapshot, parse_csv
from arena.lib.errors import APIError, APITimeoutError, SchemaValidationError
from arena.records import UNASSIGNED, SaleStatus

NOW = datetime(2025, 3, 15, 12, 0, 0)


class TestParseCsv:
    def test_rows_keyed_by_header(self, sample_csv):
        rows = parse_csv(sample_csv)
        assert len(rows) == 5
        assert rows[0]["Comercial"] == "Ana"
        assert rows[0]["Ingresos"] == "1.200,50 €"

    def test_blank_lines_are_skipped(self):
        rows = parse_csv("Comercial,Estado\n\nAna,Ganado\n,\nLuis,Perdido\n")
        assert [r["Comercial"] for r in rows] == ["Ana", "Luis"]

    def test_duplicate_header_keeps_first_non_empty(self):
        rows = parse_csv("Comercial,Estado,Estado\nAna,,Ganado\nLuis,Perdido,Ganado\n")
        assert rows[0]["Estado"] == "Ganado"
        assert rows[1]["Estado"] == "Perdido"

    def test_short_rows_are_tolerated(self):
        rows = parse_csv("Comercial,Estado,Ingresos\nAna\n")
        assert rows == [{"Comercial": "Ana"}]

    def test_byte_order_mark_is_stripped(self):
        rows = parse_csv("\ufeffID contacto,Comercial\n7,Ana\n")
        assert rows[0]["ID contacto"] == "7"

    def test_empty_document_raises(self):
        with pytest.raises(SchemaValidationError):
            parse_csv("\n\n")

    def test_unrecognised_header_raises(self):
        with pytest.raises(SchemaValidationError):
            parse_csv("<!DOCTYPE html>\n<html><body>Sign in</body></html>\n")


class TestBuildSnapshot:
    def test_normalizes_every_row(self, sample_csv):
        snapshot = build_snapshot(parse_csv(sample_csv), fetched_at=NOW)
        assert snapshot.fetched_at == NOW
        assert len(snapshot) == 5
        first = snapshot.records[0]
        assert first.status is SaleStatus.WON
        assert first.revenue == pytest.approx(1200.50)
        assert snapshot.records[4].agent == UNASSIGNED

    def test_keeps_sheet_order(self, sample_csv):
        snapshot = build_snapshot(parse_csv(sample_csv), fetched_at=NOW)
        assert [r.id for r in snapshot.records] == ["1", "2", "3", "4", "5"]

    def test_empty_rows_are_dropped(self):
        snapshot = build_snapshot([{"Comercial": " "}, {"Comercial": "Ana"}], fetched_at=NOW)
        assert len(snapshot) == 1

    def test_duplicate_ids_are_suffixed(self):
        rows = [
            {"ID contacto": "9", "Comercial": "Ana"},
            {"ID contacto": "9", "Comercial": "Luis"},
            {"ID contacto": "9", "Comercial": "Eva"},
        ]
        snapshot = build_snapshot(rows, fetched_at=NOW)
        assert [r.id for r in snapshot.records] == ["9", "9-2", "9-3"]
        assert len(snapshot.ids()) == 3

    def test_registration_fallback_is_fetch_time(self):
        snapshot = build_snapshot([{"Comercial": "Ana"}], fetched_at=NOW)
        assert snapshot.records[0].registration_date == NOW

    def test_out_of_range_dates_do_not_abort_the_snapshot(self):
        rows = [
            {"ID contacto": "1", "Comercial": "Ana", "Fecha Registro": "0001-01-01T00:00:00+14:00"},
            {"ID contacto": "2", "Comercial": "Luis", "Estado": "Ganado",
             "Fecha ganado/perdido": "9999-12-31T23:59:59-14:00"},
        ]
        snapshot = build_snapshot(rows, fetched_at=NOW)
        assert [r.id for r in snapshot.records] == ["1", "2"]
        assert snapshot.records[0].registration_date == NOW
        assert snapshot.records[1].resolution_date is None


class TestSnapshotStore:
    def test_loading_until_first_publish(self, sample_csv):
        store = SnapshotStore()
        assert store.loading is True
        assert store.snapshot is None

        snapshot = build_snapshot(parse_csv(sample_csv), fetched_at=NOW)
        assert store.publish(snapshot) is None
        assert store.loading is False
        assert store.last_updated == NOW

    def test_publish_returns_previous(self, sample_csv):
        store = SnapshotStore()
        first = build_snapshot(parse_csv(sample_csv), fetched_at=NOW)
        second = build_snapshot(parse_csv(sample_csv), fetched_at=datetime(2025, 3, 15, 12, 0, 10))
        store.publish(first)
        assert store.publish(second) is first
        assert store.snapshot is second

    def test_failure_streak_resets_on_publish(self, sample_csv):
        store = SnapshotStore()
        store.record_failure(APIError("boom", status_code=500))
        store.record_failure(APIError("boom", status_code=500))
        assert store.consecutive_failures == 2
        assert "boom" in store.status()["last_error"]

        store.publish(build_snapshot(parse_csv(sample_csv), fetched_at=NOW))
        assert store.consecutive_failures == 0
        assert store.last_error is None


def _source(*results):
    source = AsyncMock()
    source.fetch_csv = AsyncMock(side_effect=list(results))
    return source


class TestSnapshotPoller:
    @pytest.mark.asyncio
    async def test_refresh_publishes(self, sample_csv):
        store = SnapshotStore()
        poller = SnapshotPoller(_source(sample_csv), store, 10.0, clock=lambda: NOW)

        assert await poller.refresh_once() is True
        assert len(store.snapshot) == 5
        assert store.last_updated == NOW

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_snapshot(self, sample_csv):
        store = SnapshotStore()
        source = _source(sample_csv, APITimeoutError("https://example.test", 30), "<html></html>")
        poller = SnapshotPoller(source, store, 10.0, clock=lambda: NOW)

        await poller.refresh_once()
        published = store.snapshot

        assert await poller.refresh_once() is False
        assert store.snapshot is published
        assert await poller.refresh_once() is False
        assert store.snapshot is published
        assert store.last_updated == NOW
        assert store.consecutive_failures == 2

    @pytest.mark.asyncio
    async def test_failure_before_first_fetch_stays_loading(self):
        store = SnapshotStore()
        poller = SnapshotPoller(_source(APIError("down", status_code=503)), store, 10.0)

        assert await poller.refresh_once() is False
        assert store.loading is True

    @pytest.mark.asyncio
    async def test_overlapping_refresh_is_skipped(self, sample_csv):
        release = asyncio.Event()

        async def slow_fetch():
            await release.wait()
            return sample_csv

        source = AsyncMock()
        source.fetch_csv = AsyncMock(side_effect=slow_fetch)
        poller = SnapshotPoller(source, SnapshotStore(), 10.0, clock=lambda: NOW)

        first = asyncio.ensure_future(poller.refresh_once())
        await asyncio.sleep(0)
        assert await poller.refresh_once() is False

        release.set()
        assert await first is True
        assert source.fetch_csv.await_count == 1

    @pytest.mark.asyncio
    async def test_listeners_get_previous_and_current(self, sample_csv):
        listener = AsyncMock()
        store = SnapshotStore()
        poller = SnapshotPoller(_source(sample_csv, sample_csv), store, 10.0, listeners=[listener])

        await poller.refresh_once()
        first = store.snapshot
        await poller.refresh_once()

        assert listener.await_count == 2
        listener.assert_any_await(None, first)
        listener.assert_awaited_with(first, store.snapshot)

    @pytest.mark.asyncio
    async def test_listener_failure_does_not_break_refresh(self, sample_csv):
        listener = AsyncMock(side_effect=RuntimeError("socket gone"))
        poller = SnapshotPoller(_source(sample_csv), SnapshotStore(), 10.0, listeners=[listener])

        assert await poller.refresh_once() is True

    @pytest.mark.asyncio
    async def test_added_listener_runs_after_constructor_listeners(self, sample_csv):
        calls = []
        first = AsyncMock(side_effect=lambda *_: calls.append("first"))
        second = AsyncMock(side_effect=lambda *_: calls.append("second"))
        poller = SnapshotPoller(_source(sample_csv), SnapshotStore(), 10.0, listeners=[first])
        poller.add_listener(second)

        assert await poller.refresh_once() is True
        assert calls == ["first", "second"]

    @pytest.mark.asyncio
    async def test_start_fetches_immediately_and_stop_cancels(self, sample_csv):
        store = SnapshotStore()
        source = AsyncMock()
        source.fetch_csv = AsyncMock(return_value=sample_csv)
        poller = SnapshotPoller(source, store, 60.0)

        poller.start()
        assert poller.running is True
        for _ in range(10):
            await asyncio.sleep(0)
            if not store.loading:
                break
        assert store.loading is False

        await poller.stop()
        assert poller.running is False
        assert source.fetch_csv.await_count == 1
