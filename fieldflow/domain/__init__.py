"""Domain layer: workflow definitions, job lifecycle, cron schedules, exceptions."""
