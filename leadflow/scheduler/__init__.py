"""Scheduled jobs."""

from leadflow.scheduler.jobs import on_schedule, scheduler, setup_scheduler

__all__ = ["on_schedule", "scheduler", "setup_scheduler"]
