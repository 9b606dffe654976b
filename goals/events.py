# goals/events.py
from core.signals import board_event
import logging

logger = logging.getLogger(__name__)

PROJECT_LOGGED = 'project_logged'
MILESTONE_REACHED = 'milestone_reached'
ACHIEVEMENT_UNLOCKED = 'achievement_unlocked'
PERSONAL_BEST_SET = 'personal_best_set'
WEEK_ROLLED_OVER = 'week_rolled_over'


def make_event(event_type, **data):
    return {'type': event_type, **data}


def publish(events):
    """Fire-and-forget: receiver failures are logged and dropped."""
    for event in events:
        for receiver_func, response in board_event.send_robust(sender='goals', event=event):
            if isinstance(response, Exception):
                logger.warning(f"Board event receiver {receiver_func} failed on {event['type']}: {response}")
