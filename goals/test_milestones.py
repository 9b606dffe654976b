# test_milestones.py
import pytest
from goals.testing import InMemoryEventStore
from goals.events import MILESTONE_REACHED
from goals.milestones import MILESTONES, MilestoneCelebrationTrigger, completion_percentage, next_milestone
from goals.store import MILESTONES_KEY


class TestNextMilestone:

    def test_percentage(self):
        assert completion_percentage(30, 60) == 50.0
        assert completion_percentage(10, 0) == 0.0

    def test_nothing_below_first_threshold(self):
        assert next_milestone(14, 60, 0) is None

    def test_exact_threshold_fires(self):
        assert next_milestone(15, 60, 0) == 25

    def test_jump_fires_only_highest(self):
        assert next_milestone(46, 60, 0) == 75
        assert next_milestone(60, 60, 25) == 100

    def test_already_reached(self):
        assert next_milestone(30, 60, 50) is None

    def test_over_goal(self):
        assert next_milestone(90, 60, 75) == 100
        assert next_milestone(90, 60, 100) is None


class TestMilestoneCelebrationTrigger:

    def setup_method(self):
        self.store = InMemoryEventStore()
        self.trigger = MilestoneCelebrationTrigger(self.store)

    def test_each_threshold_once_in_ascending_order(self):
        fired = []
        for completed in range(0, 61):
            event = self.trigger.check(completed, 60)
            if event:
                fired.append(event['milestone'])
        assert fired == list(MILESTONES)

    @pytest.mark.parametrize("steps", [(7, 13, 30, 60), (20, 41, 60), (60,), (1, 2, 3, 44, 45, 59, 60)])
    def test_any_step_sizes_fire_ascending_without_repeats(self, steps):
        fired = [e['milestone'] for e in (self.trigger.check(c, 60) for c in steps) if e]
        assert fired == sorted(set(fired))
        assert fired[-1] == 100

    def test_event_payload(self):
        event = self.trigger.check(25, 60)
        assert event == {'type': MILESTONE_REACHED, 'milestone': 25, 'completed': 25, 'goal': 60}
        assert self.store.settings[MILESTONES_KEY] == {'last_milestone_reached': 25}

    def test_goal_scenario(self):
        # 25 of 60 is 41.6%: the 25% milestone fires
        assert self.trigger.check(25, 60)['milestone'] == 25
        assert self.trigger.check(30, 60)['milestone'] == 50
        assert self.trigger.check(60, 60)['milestone'] == 100

    def test_reset(self):
        self.trigger.check(60, 60)
        self.trigger.reset()
        assert self.trigger.last_reached == 0
        assert self.trigger.check(15, 60)['milestone'] == 25
