#!/usr/bin/env python3
"""
One-shot reminder run for hosts without a web cron (cron, Task Scheduler, Heroku Scheduler).
Sends tomorrow's provider reminders and courier summaries, then exits.

Usage:
    python reminder_worker.py               # tomorrow relative to today
    python reminder_worker.py 2025-12-05    # pretend "today" is this date

Running it twice in one day sends every reminder twice.
"""
import os
import sys
from datetime import date

# Deliver inline so the counts below are real and the process can exit
os.environ.setdefault("NOTIFY_ASYNC", "False")

from app import app, send_tomorrow_reminders


def run_reminders(run_date=None):
    with app.app_context():
        result = send_tomorrow_reminders(run_date)
        stats = result["stats"]
        app.logger.info(
            f"Reminders for {result['date']}: {stats['pickupLocations']} pickup locations, "
            f"{stats['remindersSent']} reminders, {stats['courierSummariesSent']} courier summaries "
            f"({stats['emailsAttempted']} attempted)"
        )
        return result


def main():
    run_date = None
    if len(sys.argv) > 1:
        try:
            run_date = date.fromisoformat(sys.argv[1])
        except ValueError:
            print(f"Invalid date {sys.argv[1]!r}; expected YYYY-MM-DD")
            sys.exit(2)
    result = run_reminders(run_date)
    stats = result["stats"]
    if stats["emailsAttempted"] and not (stats["remindersSent"] + stats["courierSummariesSent"]):
        # Every send failed; let the scheduler see a non-zero exit
        sys.exit(1)


if __name__ == "__main__":
    main()
