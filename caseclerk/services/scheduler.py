import atexit
import logging
import os
from datetime import datetime, timedelta

from apscheduler.schedulers.background import BackgroundScheduler
from flask import current_app

from ..models import db, CalendarEvent

logger = logging.getLogger(__name__)

_scheduler = None

REMINDER_EVENT_STATUSES = ('scheduled', 'confirmed', 'rescheduled')


def _run_in_context(app, func, args):
    with app.app_context():
        try:
            func(*args)
        except Exception as e:
            db.session.rollback()
            app.logger.error(f"Background job {func.__name__} failed: {str(e)}")


def run_later(func, delay_seconds, *args):
    """Run ``func(*args)`` after a delay inside an app context.

    With TASKS_EAGER (or no running scheduler) the job runs immediately in the
    current context.
    """
    app = current_app._get_current_object()
    if app.config.get('TASKS_EAGER') or _scheduler is None:
        return func(*args)
    _scheduler.add_job(
        _run_in_context,
        'date',
        run_date=datetime.now() + timedelta(seconds=delay_seconds),
        args=[app, func, args],
    )
    return None


def _notify(method, event, reminder):
    recipients = [a.get('email') for a in (event.attendees or []) if a.get('email')]
    logger.info(
        f"[MOCK {method.upper()} REMINDER] To={', '.join(recipients) or 'n/a'} | "
        f"Event={event.title} at {event.start_time.strftime('%Y-%m-%d %H:%M')} | "
        f"{reminder.get('time_before')} minutes before"
    )


def check_event_reminders(now=None):
    """Dispatch due reminders and mark them sent. Returns the number dispatched."""
    now = now or datetime.utcnow()
    sent_count = 0
    events = (
        CalendarEvent.query
        .filter(CalendarEvent.status.in_(REMINDER_EVENT_STATUSES))
        .filter(CalendarEvent.start_time >= now)
        .all()
    )
    for ev in events:
        try:
            reminders = [dict(r) for r in (ev.reminders or [])]
            changed = False
            for reminder in reminders:
                if reminder.get('sent'):
                    continue
                remind_at = ev.start_time - timedelta(minutes=int(reminder.get('time_before') or 0))
                if remind_at <= now:
                    _notify(reminder.get('method') or 'notification', ev, reminder)
                    reminder['sent'] = True
                    changed = True
                    sent_count += 1
            if changed:
                ev.reminders = reminders
                db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Reminder job error for event {getattr(ev, 'id', '?')}: {str(e)}")
    return sent_count


def _reminder_job(app):
    with app.app_context():
        check_event_reminders()


def start_scheduler(app):
    """Start the background scheduler once per process."""
    global _scheduler
    if not app.config.get('SCHEDULER_ENABLED'):
        return None
    # Under the reloader only the child process runs jobs
    if app.debug and os.environ.get('WERKZEUG_RUN_MAIN') != 'true':
        return None
    if _scheduler is not None:
        return _scheduler
    _scheduler = BackgroundScheduler()
    _scheduler.add_job(_reminder_job, 'interval', minutes=1, id='calendar_reminders', args=[app])
    _scheduler.start()
    atexit.register(shutdown_scheduler)
    app.logger.info('APScheduler started for calendar reminders.')
    return _scheduler


def shutdown_scheduler():
    global _scheduler
    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None
