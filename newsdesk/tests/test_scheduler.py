"""
Tests for the periodic refresher.
"""

from unittest.mock import MagicMock

from newsdesk.scheduler import RefreshScheduler


class TestRefreshScheduler:
    """Tests for RefreshScheduler."""

    def test_run_job_refreshes(self):
        """A job run should force-refresh the service."""
        service = MagicMock()
        service.refresh_all_feeds.return_value = 3

        RefreshScheduler(service)._run_job()

        service.refresh_all_feeds.assert_called_once_with()

    def test_run_job_swallows_errors(self):
        """A failing run should not kill the scheduler thread."""
        service = MagicMock()
        service.refresh_all_feeds.side_effect = RuntimeError("boom")

        RefreshScheduler(service)._run_job()

    def test_start_and_stop(self):
        scheduler = RefreshScheduler(MagicMock(), interval_seconds=3600)

        scheduler.start()
        try:
            assert scheduler.running
            assert scheduler.get_next_run() is not None
        finally:
            scheduler.stop()

        assert not scheduler.running

    def test_no_next_run_before_start(self):
        assert RefreshScheduler(MagicMock()).get_next_run() is None
