"""Tests for weather_pulse.environment module."""

import asyncio
from unittest.mock import MagicMock

import httpx
import pytest

from weather_pulse.environment import EnvironmentMonitor, connectivity_probe
from weather_pulse.types import ConnectionClass, PerformanceSnapshot


class TestEnvironmentMonitor:
    """Snapshot ownership and change notification."""

    def test_default_snapshot(self):
        monitor = EnvironmentMonitor()
        assert monitor.snapshot.is_online is True
        assert monitor.snapshot.connection_class == ConnectionClass.FAST
        assert monitor.version == 0

    def test_update_replaces_and_notifies(self):
        monitor = EnvironmentMonitor()
        listener = MagicMock()
        monitor.add_listener(listener)
        snapshot = PerformanceSnapshot(connection_class=ConnectionClass.SLOW)

        monitor.update(snapshot)

        assert monitor.snapshot is snapshot
        assert monitor.version == 1
        listener.assert_called_once_with(snapshot)

    def test_remove_listener(self):
        monitor = EnvironmentMonitor()
        listener = MagicMock()
        monitor.add_listener(listener)
        monitor.remove_listener(listener)
        monitor.update(PerformanceSnapshot())
        listener.assert_not_called()

    def test_listener_error_is_isolated(self):
        monitor = EnvironmentMonitor()
        good = MagicMock()
        monitor.add_listener(MagicMock(side_effect=RuntimeError("boom")))
        monitor.add_listener(good)
        monitor.update(PerformanceSnapshot())
        good.assert_called_once()

    def test_update_fields_going_offline(self):
        monitor = EnvironmentMonitor()
        snapshot = monitor.update_fields(is_online=False)
        assert snapshot.is_online is False
        assert snapshot.connection_class == ConnectionClass.OFFLINE
        assert monitor.snapshot == snapshot

    def test_update_fields_back_online(self):
        monitor = EnvironmentMonitor(PerformanceSnapshot(is_online=False, connection_class=ConnectionClass.OFFLINE))
        snapshot = monitor.update_fields(is_online=True)
        assert snapshot.connection_class == ConnectionClass.FAST

    def test_update_fields_keeps_other_signals(self):
        monitor = EnvironmentMonitor(PerformanceSnapshot(low_power=True, memory_pressure=0.5))
        snapshot = monitor.update_fields(connection_class=ConnectionClass.MEDIUM)
        assert snapshot.low_power is True
        assert snapshot.memory_pressure == 0.5
        assert snapshot.connection_class == ConnectionClass.MEDIUM

    def test_memory_pressure_is_clamped(self):
        assert PerformanceSnapshot(memory_pressure=1.7).memory_pressure == 1.0
        assert PerformanceSnapshot(memory_pressure=-0.2).memory_pressure == 0.0


class TestWaitForChange:
    """Awaiting snapshot replacement."""

    @pytest.mark.asyncio
    async def test_wakes_on_update(self):
        monitor = EnvironmentMonitor()
        asyncio.get_running_loop().call_soon(lambda: monitor.update_fields(low_power=True))
        assert await monitor.wait_for_change(timeout=1.0) is True
        assert monitor.snapshot.low_power is True

    @pytest.mark.asyncio
    async def test_timeout(self):
        monitor = EnvironmentMonitor()
        assert await monitor.wait_for_change(timeout=0.01) is False

    @pytest.mark.asyncio
    async def test_missed_update_returns_immediately(self):
        monitor = EnvironmentMonitor()
        seen = monitor.version
        monitor.update_fields(low_power=True)
        assert await monitor.wait_for_change(timeout=0.01, since=seen) is True

    @pytest.mark.asyncio
    async def test_second_wait_needs_new_update(self):
        monitor = EnvironmentMonitor()
        monitor.update_fields(low_power=True)
        assert await monitor.wait_for_change(timeout=0.01, since=monitor.version) is False


class TestRunProbe:
    """Periodic refresh from a probe."""

    @pytest.mark.asyncio
    async def test_probe_updates_snapshot_and_interval_is_clamped(self):
        monitor = EnvironmentMonitor()
        delays = []

        async def probe():
            return PerformanceSnapshot(connection_class=ConnectionClass.MEDIUM)

        async def sleep(seconds):
            delays.append(seconds)
            raise asyncio.CancelledError

        with pytest.raises(asyncio.CancelledError):
            await monitor.run_probe(probe, interval=5, sleep=sleep)

        assert monitor.snapshot.connection_class == ConnectionClass.MEDIUM
        assert delays == [30.0]

    @pytest.mark.asyncio
    async def test_failing_probe_keeps_snapshot(self):
        initial = PerformanceSnapshot(connection_class=ConnectionClass.SLOW)
        monitor = EnvironmentMonitor(initial)

        async def probe():
            raise RuntimeError("sensor unavailable")

        async def sleep(seconds):
            raise asyncio.CancelledError

        with pytest.raises(asyncio.CancelledError):
            await monitor.run_probe(probe, sleep=sleep)

        assert monitor.snapshot is initial
        assert monitor.version == 0


class TestConnectivityProbe:
    """HEAD-request based classification."""

    @pytest.mark.asyncio
    async def test_unreachable_is_offline(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            snapshot = await connectivity_probe(client, "https://probe.test/")

        assert snapshot.is_online is False
        assert snapshot.connection_class == ConnectionClass.OFFLINE

    @pytest.mark.asyncio
    async def test_quick_response_is_fast(self):
        async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(204))) as client:
            snapshot = await connectivity_probe(
                client, "https://probe.test/", slow_threshold_ms=60000, medium_threshold_ms=30000
            )

        assert snapshot.is_online is True
        assert snapshot.connection_class == ConnectionClass.FAST

    @pytest.mark.asyncio
    async def test_thresholds_classify_slow(self):
        async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(204))) as client:
            snapshot = await connectivity_probe(
                client, "https://probe.test/", slow_threshold_ms=-1, medium_threshold_ms=-1
            )

        assert snapshot.connection_class == ConnectionClass.SLOW

    @pytest.mark.asyncio
    async def test_carries_power_fields_from_base(self):
        base = PerformanceSnapshot(low_power=True, memory_pressure=0.4)
        async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200))) as client:
            snapshot = await connectivity_probe(client, "https://probe.test/", base=base)

        assert snapshot.low_power is True
        assert snapshot.memory_pressure == 0.4
