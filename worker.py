#!/usr/bin/env python3
"""
Long-running worker process for the daily reminder sweep.
Keeps the scheduler separate from the web process (Procfile: `worker: python worker.py`).
"""

import os
from dotenv import load_dotenv
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

# Load environment variables
load_dotenv()
os.environ.setdefault("NOTIFY_ASYNC", "False")

# Import after loading env vars
from app import app
from reminder_worker import run_reminders

REMINDER_HOUR = int(os.environ.get("REMINDER_HOUR", "17"))


def run_scheduler():
    """Run the blocking scheduler for the evening-before reminders."""
    scheduler = BlockingScheduler(timezone=app.config["APP_TIMEZONE"])

    scheduler.add_job(
        run_reminders,
        CronTrigger(hour=REMINDER_HOUR, timezone=app.config["APP_TIMEZONE"]),
        id='daily-dropoff-reminders',
        replace_existing=True
    )

    app.logger.info(f"Drop-off reminders scheduled daily at {REMINDER_HOUR}:00 {app.config['APP_TIMEZONE']}")

    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        scheduler.shutdown()


if __name__ == '__main__':
    run_scheduler()
