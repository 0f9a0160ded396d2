"""Domain value objects."""

from fieldflow.domain.value_objects.cron import CRON_MAX_ITERATIONS, CronSchedule

__all__ = ["CRON_MAX_ITERATIONS", "CronSchedule"]
