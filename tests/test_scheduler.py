from datetime import timedelta
from unittest.mock import MagicMock

from conftest import KICKOFF, add_result
from betpool.services.scheduler_service import AUTO_SETTLE_JOB_ID, SchedulerService
from betpool.utils.timezone_utils import get_utc_time


def _service(app):
    service = SchedulerService()
    service.app = app
    service.scheduler = MagicMock()
    service.scheduler.get_job.return_value = None
    service.is_running = True
    return service


def test_schedules_after_latest_pending_kickoff(app, db, roster):
    kickoff = get_utc_time() + timedelta(days=1)
    add_result(roster[0], 1, event_id="E1", kickoff=kickoff)
    add_result(roster[1], 1, event_id="E2", kickoff=kickoff - timedelta(hours=2))
    db.session.commit()
    service = _service(app)

    run_at = service.schedule_auto_settlement()

    assert run_at == kickoff + timedelta(minutes=135)
    kwargs = service.scheduler.add_job.call_args[1]
    assert kwargs["id"] == AUTO_SETTLE_JOB_ID
    assert kwargs["replace_existing"] is True


def test_runs_straight_away_when_overdue(app, db, roster):
    add_result(roster[0], 1, event_id="E1", kickoff=KICKOFF)
    db.session.commit()
    service = _service(app)
    before = get_utc_time()

    run_at = service.schedule_auto_settlement()

    assert before <= run_at <= get_utc_time()


def test_cancels_when_nothing_pending(app, roster):
    service = _service(app)

    assert service.schedule_auto_settlement() is None
    service.scheduler.remove_job.assert_called_once_with(AUTO_SETTLE_JOB_ID)
    service.scheduler.add_job.assert_not_called()


def test_does_nothing_when_not_running(app, roster):
    service = _service(app)
    service.is_running = False

    assert service.schedule_auto_settlement() is None
    service.scheduler.add_job.assert_not_called()


def test_status_reports_jobs(app):
    service = _service(app)
    job = MagicMock(next_run_time=KICKOFF, trigger="date[2025-10-18 15:00:00 UTC]")
    job.id = AUTO_SETTLE_JOB_ID
    job.name = "Auto Settle Pending Predictions"
    service.scheduler.get_jobs.return_value = [job]

    status = service.get_status()

    assert status["is_running"] is True
    assert status["jobs"][0]["id"] == AUTO_SETTLE_JOB_ID
    assert status["jobs"][0]["next_run"] == KICKOFF.isoformat()
