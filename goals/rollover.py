# goals/rollover.py
from datetime import datetime, time, timedelta
from django.core.cache import cache as default_cache
from django.utils import timezone
from core.roster import find_salesperson
from goals.aggregation import local_time, top_salesperson, monthly_champion
from goals.exceptions import RolloverAbortedError, StoreReadError, StoreWriteError
from goals.store import MONTHLY_CHAMPION_KEY, PENDING_ROLLOVER_KEY
import logging

logger = logging.getLogger(__name__)

IDLE = 'idle'
SUMMARIZING = 'summarizing'
PERSISTING = 'persisting'
ARCHIVING = 'archiving'
FAILED = 'failed'

SUNDAY = 6
AUTO_ROLLOVER_MARKER_KEY = 'last_auto_rollover_date'


###############
# Week and month arithmetic
def week_bounds(day):
    """(Sunday, Saturday) of the Sunday-to-Saturday week containing `day`."""
    week_start = day - timedelta(days=(day.weekday() + 1) % 7)
    return week_start, week_start + timedelta(days=6)


def resolve_rollover_week(invoked_on, automatic=False):
    """
    Week a rollover closes.

    A manual rollover closes the week containing the invocation date, even if it
    has not ended yet. The automatic trigger runs on Sunday, the first day of a
    new week, so it closes the week containing the day before.
    """
    target_day = invoked_on - timedelta(days=1) if automatic else invoked_on
    return week_bounds(target_day)


def format_week_display(week_start, week_end):
    return f"{week_start.strftime('%b')} {week_start.day} - {week_end.strftime('%b')} {week_end.day}"


def week_label(week_start):
    return f"week-{week_start.isoformat()}"


def is_last_day_of_month(day):
    return (day + timedelta(days=1)).month != day.month


def month_range(day):
    """Aware [start, end) datetimes of the calendar month containing `day`."""
    first = day.replace(day=1)
    next_first = (first + timedelta(days=32)).replace(day=1)
    tz = timezone.get_current_timezone()
    return (
        timezone.make_aware(datetime.combine(first, time.min), tz),
        timezone.make_aware(datetime.combine(next_first, time.min), tz),
    )


###############
# Summary
def build_weekly_record(projects_for_log, target, week_start, week_end):
    """
    Summary of the snapshot being archived.

    Args:
        projects_for_log: the live projects captured when the rollover started
        target: weekly goal at invocation time
        week_start: Sunday of the week being closed
        week_end: Saturday of the week being closed

    Returns:
        dict: fields of a WeeklyRecord
    """
    top_name = "N/A"
    top_projects = 0

    top_id, top_count = top_salesperson(projects_for_log)
    if top_id:
        salesperson = find_salesperson(top_id)
        if salesperson:
            top_name = salesperson['name']
        else:
            top_name = next(
                (p.get('salesperson_name') for p in projects_for_log if p.get('salesperson_id') == top_id),
                top_id,
            )
        top_projects = top_count

    return {
        'week_display': format_week_display(week_start, week_end),
        'week_start_date': week_start,
        'week_end_date': week_end,
        'completed': len(projects_for_log),
        'target': target,
        'top_salesperson_name': top_name,
        'top_salesperson_projects': top_projects,
    }


def projects_before(projects, day):
    """Projects logged before `day` (local date). Unreadable timestamps are included."""
    earlier = []
    for project in projects:
        try:
            if local_time(project['timestamp']).date() < day:
                earlier.append(project)
        except (AttributeError, KeyError, TypeError, ValueError):
            earlier.append(project)
    return earlier


def current_monthly_champion(store, today):
    """The stored champion, hidden once its month is no longer the current one."""
    champion = store.get_singleton(MONTHLY_CHAMPION_KEY)
    if champion and champion.get('month') == today.strftime('%Y-%m'):
        return champion
    return None


class WeekRolloverManager:
    """
    Closes a week: persists its WeeklyRecord, then archives the live projects.

    The record is always written before anything destructive happens. If it
    cannot be saved the rollover aborts and the live projects are untouched.
    If archiving fails afterwards, the record exists but the board is not
    cleared; archive_batch skips already archived ids, so a retry is safe.
    """

    def __init__(self, store):
        self.store = store
        self.state = IDLE
        self.last_outcome = None

    def rollover(self, projects_for_log, invoked_on=None, automatic=False, now=None):
        """
        Archive `projects_for_log` into a new WeeklyRecord.

        The snapshot is passed in rather than re-queried, so projects logged
        while the rollover runs stay on the board for next week.

        Returns:
            dict: record, archived_ids, archived_count, backed_up, monthly_champion

        Raises:
            RolloverAbortedError: the record was not saved; nothing changed
            StoreWriteError: the record was saved but archiving failed
        """
        now = now or timezone.now()
        invoked_on = invoked_on or timezone.localdate(now)
        projects_for_log = list(projects_for_log)

        try:
            result = self._run(projects_for_log, invoked_on, automatic, now)
        except StoreWriteError:
            self.last_outcome = FAILED
            raise
        finally:
            self.state = IDLE

        self.last_outcome = 'succeeded'
        return result

    def _run(self, projects_for_log, invoked_on, automatic, now):
        self.state = SUMMARIZING
        week_start, week_end = resolve_rollover_week(invoked_on, automatic)
        logger.info(
            f"{'Automatic' if automatic else 'Manual'} rollover of {len(projects_for_log)} projects "
            f"for week {week_start} to {week_end}"
        )

        try:
            record = self._unfinished_record(week_end)
            resumed = record is not None
            if not resumed:
                target = self.store.get_goal()
                record = build_weekly_record(projects_for_log, target, week_start, week_end)

                self.state = PERSISTING
                record['id'] = self.store.append_weekly_record(record)
        except (StoreReadError, StoreWriteError) as e:
            error_msg = f"Weekly record not saved, board left untouched: {e}"
            logger.error(error_msg)
            self.store.log_status_flag('rollover_fail', error_msg)
            raise RolloverAbortedError(error_msg) from e

        label = week_label(week_start)
        backed_up = self._backup(projects_for_log, label)

        self.state = ARCHIVING
        ids = [p['id'] for p in projects_for_log if p.get('id') is not None]
        try:
            archived_count = self.store.archive_batch(ids, archived_at=now)
        except StoreWriteError as e:
            error_msg = f"Weekly record {record['id']} saved but board not cleared: {e}"
            logger.error(error_msg)
            self.store.log_status_flag('rollover_fail', error_msg)
            self._remember_unfinished(record, week_end)
            raise

        if resumed:
            self._forget_unfinished()
        self.store.log_status_flag('rollover_fail')
        logger.info(f"Week {record['week_display']} logged: {record['completed']}/{record['target']}, "
                    f"{archived_count} projects archived")

        return {
            'record': record,
            'resumed': resumed,
            'archived_ids': ids,
            'archived_count': archived_count,
            'backed_up': backed_up,
            'week_label': label,
            'monthly_champion': self._crown_monthly_champion(invoked_on, now),
        }

    def _unfinished_record(self, week_end):
        """
        The record saved by an earlier rollover of this week whose archive step failed.

        Reusing it keeps a retry from writing a second record for the same week.
        """
        pending = self.store.get_singleton(PENDING_ROLLOVER_KEY) or {}
        if not pending.get('record_id'):
            return None
        if pending.get('week_end_date') != week_end.isoformat():
            logger.warning(
                f"Unfinished rollover of week ending {pending.get('week_end_date')} "
                f"does not match {week_end}, starting a new record"
            )
            return None

        record = self.store.get_weekly_record(pending['record_id'])
        if record is None:
            logger.warning(f"Unfinished rollover record {pending['record_id']} no longer exists")
            return None

        logger.info(f"Resuming rollover of week ending {week_end} with record {record['id']}")
        return record

    def _remember_unfinished(self, record, week_end):
        try:
            self.store.set_singleton(PENDING_ROLLOVER_KEY, {
                'record_id': record['id'],
                'week_end_date': week_end.isoformat(),
            })
        except StoreWriteError as e:
            logger.error(f"Could not remember unfinished rollover of record {record['id']}: {e}")

    def _forget_unfinished(self):
        try:
            self.store.set_singleton(PENDING_ROLLOVER_KEY, {})
        except StoreWriteError as e:
            logger.error(f"Could not clear unfinished rollover marker: {e}")

    def _backup(self, projects_for_log, label):
        if not projects_for_log:
            return True
        try:
            self.store.backup_batch(projects_for_log, label)
        except StoreWriteError as e:
            logger.error(f"Backup for {label} failed, continuing rollover: {e}")
            self.store.log_status_flag('backup_fail', str(e))
            return False
        self.store.log_status_flag('backup_fail')
        return True

    def _crown_monthly_champion(self, invoked_on, now):
        if not is_last_day_of_month(invoked_on):
            return None

        month = invoked_on.strftime('%Y-%m')
        start, end = month_range(invoked_on)
        try:
            champion = monthly_champion(self.store.list_events_between(start, end), month)
            if champion:
                champion['crowned_at'] = now.isoformat()
                self.store.set_singleton(MONTHLY_CHAMPION_KEY, champion)
                logger.info(f"Monthly champion for {month}: {champion['salesperson_name']} ({champion['projects']})")
        except (StoreReadError, StoreWriteError) as e:
            logger.error(f"Monthly champion for {month} not saved: {e}")
            self.store.log_status_flag('monthly_champion_fail', str(e))
            return None

        self.store.log_status_flag('monthly_champion_fail')
        return champion


class AutoRolloverGuard:
    """
    Allows the automatic rollover once per Sunday.

    The marker lives in this process's cache, not in the shared store, so two
    clients could each roll over the same week.
    """

    def __init__(self, cache=None):
        self.cache = default_cache if cache is None else cache

    def should_run(self, today):
        if today.weekday() != SUNDAY:
            return False
        return self.cache.get(AUTO_ROLLOVER_MARKER_KEY) != today.isoformat()

    def claim(self, today):
        self.cache.set(AUTO_ROLLOVER_MARKER_KEY, today.isoformat(), None)
