# goals/milestones.py
from goals.events import make_event, MILESTONE_REACHED
from goals.store import MILESTONES_KEY
import logging

logger = logging.getLogger(__name__)

MILESTONES = (25, 50, 75, 100)


def completion_percentage(completed, goal):
    if not goal or goal <= 0:
        return 0.0
    return (completed / goal) * 100


def next_milestone(completed, goal, last_reached):
    """
    Highest milestone that is <= the current percentage and above last_reached.

    Crossing several thresholds in one jump returns only the highest of them.
    Returns None when nothing new was reached.
    """
    percentage = completion_percentage(completed, goal)
    reached = [m for m in MILESTONES if last_reached < m <= percentage]
    return max(reached) if reached else None


class MilestoneCelebrationTrigger:
    def __init__(self, store):
        self.store = store

    @property
    def last_reached(self):
        state = self.store.get_singleton(MILESTONES_KEY) or {}
        return int(state.get('last_milestone_reached') or 0)

    def check(self, completed, goal):
        milestone = next_milestone(completed, goal, self.last_reached)
        if milestone is None:
            return None

        self.store.set_singleton(MILESTONES_KEY, {'last_milestone_reached': milestone})
        logger.info(f"Milestone {milestone}% reached ({completed}/{goal})")
        return make_event(MILESTONE_REACHED, milestone=milestone, completed=completed, goal=goal)

    def reset(self):
        self.store.set_singleton(MILESTONES_KEY, {'last_milestone_reached': 0})
