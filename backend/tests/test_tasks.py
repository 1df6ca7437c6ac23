"""Wiring of the periodic jobs."""

import schedule

from otakusensei.celery_app import celery_app
from otakusensei.tasks import subscriptions
from otakusensei.tasks.scheduler import configure_schedule, run_purge, run_sweep


def test_configure_schedule_registers_both_jobs():
    scheduler = configure_schedule(schedule.Scheduler())

    jobs = {job.job_func.func: job for job in scheduler.jobs}

    assert set(jobs) == {run_sweep, run_purge}
    assert jobs[run_sweep].unit == "days"
    assert jobs[run_purge].unit == "hours"
    assert jobs[run_purge].interval == 1


def test_beat_schedule_points_at_registered_tasks():
    registered = {
        subscriptions.run_subscription_sweep_task.name,
        subscriptions.purge_expired_credentials_task.name,
    }

    beat_tasks = {entry["task"] for entry in celery_app.conf.beat_schedule.values()}

    assert beat_tasks == registered
    assert registered <= set(celery_app.tasks.keys())
