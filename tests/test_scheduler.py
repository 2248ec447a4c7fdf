"""
Tests for the connectivity refresh job
"""
from unittest.mock import MagicMock

import pytest

from hymnal.jobs.scheduler import JOB_ID, ConnectivityMonitor


@pytest.fixture
def scheduler():
    scheduler = MagicMock()
    scheduler.running = False
    scheduler.get_job.return_value = object()
    return scheduler


@pytest.fixture
def monitor(context, scheduler):
    return ConnectivityMonitor(context, online_interval=300, offline_interval=30, scheduler=scheduler)


def scheduled_seconds(call):
    return call.kwargs["trigger"].interval.total_seconds()


class TestConnectivityMonitor:
    def test_from_settings(self, context):
        context.settings["connectivity"] = {"online_interval_seconds": 600, "offline_interval_seconds": 15}
        monitor = ConnectivityMonitor.from_settings(context)
        assert (monitor.online_interval, monitor.offline_interval) == (600, 15)

    def test_check_now(self, monitor, remote):
        assert monitor.check_now() is True
        remote.set_offline(True)
        monitor.context.clear_caches()
        assert monitor.check_now() is False

    def test_start_schedules_at_online_interval(self, monitor, scheduler):
        monitor.start()
        call = scheduler.add_job.call_args
        assert call.kwargs["id"] == JOB_ID
        assert scheduled_seconds(call) == 300
        scheduler.start.assert_called_once()

    def test_start_offline_polls_fast(self, monitor, scheduler, remote):
        remote.set_offline(True)
        monitor.start()
        assert scheduled_seconds(scheduler.add_job.call_args) == 30

    def test_poll_reschedules_on_change(self, monitor, scheduler, remote):
        monitor.start()
        remote.set_offline(True)
        monitor.context.clear_caches()

        monitor._poll()
        scheduler.reschedule_job.assert_called_once()
        assert scheduled_seconds(scheduler.reschedule_job.call_args) == 30

        monitor._poll()
        scheduler.reschedule_job.assert_called_once()

    def test_shutdown(self, monitor, scheduler):
        monitor.shutdown()
        scheduler.shutdown.assert_not_called()
        scheduler.running = True
        monitor.shutdown()
        scheduler.shutdown.assert_called_once_with(wait=False)
