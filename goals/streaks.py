# goals/streaks.py
from datetime import date, timedelta
from django.utils import timezone
from goals.aggregation import valid_events, local_time
from goals.events import make_event, PERSONAL_BEST_SET
from goals.store import STREAK_KEY
import logging

logger = logging.getLogger(__name__)

EMPTY_STREAK = {'current_streak': 0, 'last_date': None, 'best_streak': 0}


def advance_streak(state, today):
    """
    Apply one day of logging activity to a streak state.

    Args:
        state: dict with current_streak, last_date ('YYYY-MM-DD' or None), best_streak
        today: date of the activity

    Returns:
        tuple: (new_state, changed)
    """
    state = state or {}
    current = int(state.get('current_streak') or 0)
    best = int(state.get('best_streak') or 0)
    last_date = state.get('last_date')

    today_str = today.isoformat()
    if last_date == today_str:
        # Several logs on the same day count once
        return {'current_streak': current, 'last_date': last_date, 'best_streak': best}, False

    yesterday_str = (today - timedelta(days=1)).isoformat()
    if last_date == yesterday_str:
        current += 1
    else:
        current = 1

    return {
        'current_streak': current,
        'last_date': today_str,
        'best_streak': max(best, current),
    }, True


class StreakTracker:
    def __init__(self, store):
        self.store = store

    def get_state(self):
        return dict(EMPTY_STREAK, **(self.store.get_singleton(STREAK_KEY) or {}))

    def record_activity(self, today):
        new_state, changed = advance_streak(self.get_state(), today)
        if changed:
            self.store.set_singleton(STREAK_KEY, new_state)
            logger.info(f"Streak now {new_state['current_streak']} day(s) (best {new_state['best_streak']})")
        return new_state


def count_for_week(events, salesperson_id, week_start):
    week_end = week_start + timedelta(days=7)
    return sum(
        1 for event in valid_events(events)
        if event['salesperson_id'] == salesperson_id
        and week_start <= local_time(event['timestamp']).date() < week_end
    )


def _as_date(value):
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


class PersonalBestTracker:
    """
    Tracks each salesperson's best weekly project count.

    The first value stored for a salesperson is not a record. Afterwards a
    strictly higher weekly count raises the best, and the personal_best_set
    event fires only for the first raise within a given week; further raises
    the same week update the stored best silently.
    """

    def __init__(self, store):
        self.store = store

    def record_activity(self, salesperson_id, salesperson_name, week_start, live_events, now=None):
        now = now or timezone.now()
        week_count = count_for_week(live_events, salesperson_id, week_start)
        stored = self.store.get_personal_best(salesperson_id)

        new_best = {
            'salesperson_name': salesperson_name,
            'weekly_best': week_count,
            'achieved_date': now,
            'best_week_start': week_start,
        }

        if stored is None:
            self.store.save_personal_best(salesperson_id, new_best)
            return None

        previous_best = int(stored.get('weekly_best') or 0)
        if week_count <= previous_best:
            return None

        self.store.save_personal_best(salesperson_id, new_best)
        if _as_date(stored.get('best_week_start')) == week_start:
            return None

        logger.info(f"New personal best for {salesperson_name}: {week_count} (was {previous_best})")
        return make_event(
            PERSONAL_BEST_SET,
            salesperson_id=salesperson_id,
            salesperson_name=salesperson_name,
            weekly_best=week_count,
            previous_best=previous_best,
        )
