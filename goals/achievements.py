# goals/achievements.py
from goals.events import make_event, ACHIEVEMENT_UNLOCKED
import logging

logger = logging.getLogger(__name__)

# Rules are independent: none disables another, so evaluation order only
# affects the order of the returned ids.
ACHIEVEMENTS = {
    "first_project": {
        "name": "Off the Mark",
        "description": "Log the first project of the week",
        "metric": "weekly_projects",
        "operator": "gte",
        "target": 1,
    },
    "ten_in_a_week": {
        "name": "Double Digits",
        "description": "Log 10 projects in one week",
        "metric": "weekly_projects",
        "operator": "gte",
        "target": 10,
    },
    "fifty_in_a_week": {
        "name": "Half Century",
        "description": "Log 50 projects in one week",
        "metric": "weekly_projects",
        "operator": "gte",
        "target": 50,
    },
    "goal_crushed": {
        "name": "Goal Crushed",
        "description": "Reach the weekly goal",
        "metric": "goal_progress",
        "operator": "gte",
        "target": 100,
    },
    "monday_momentum": {
        "name": "Monday Momentum",
        "description": "Log 5 projects on a Monday",
        "metric": "monday_projects",
        "operator": "gte",
        "target": 5,
    },
    "power_hour": {
        "name": "Power Hour",
        "description": "Log 5 projects within the same clock hour",
        "metric": "hourly_max",
        "operator": "gte",
        "target": 5,
    },
    "full_house": {
        "name": "Full House",
        "description": "Every salesperson logs a project on the same day",
        "metric": "all_salespeople_day",
        "operator": "is_true",
    },
    "variety_pack": {
        "name": "Variety Pack",
        "description": "Every project type is logged on the same day",
        "metric": "all_project_types_day",
        "operator": "is_true",
    },
    "three_day_streak": {
        "name": "Heating Up",
        "description": "Log projects three days in a row",
        "metric": "current_streak",
        "operator": "gte",
        "target": 3,
    },
    "week_long_streak": {
        "name": "On Fire",
        "description": "Log projects seven days in a row",
        "metric": "current_streak",
        "operator": "gte",
        "target": 7,
    },
}


def rule_satisfied(rule, stats):
    value = stats.get(rule["metric"])
    if value is None:
        return False
    if rule["operator"] == "is_true":
        return value is True
    if rule["operator"] == "gte":
        try:
            return float(value) >= rule["target"]
        except (TypeError, ValueError):
            logger.warning(f"Non-numeric value {value!r} for metric {rule['metric']}")
            return False
    logger.warning(f"Unknown achievement operator: {rule['operator']}")
    return False


def evaluate(stats, already_unlocked):
    """Ids of rules that are satisfied by `stats` and not yet unlocked, in table order."""
    return [
        rule_id for rule_id, rule in ACHIEVEMENTS.items()
        if rule_id not in already_unlocked and rule_satisfied(rule, stats)
    ]


class AchievementEvaluator:
    def __init__(self, store):
        self.store = store

    def evaluate_and_unlock(self, stats):
        """
        Persist every newly satisfied rule once.

        Returns:
            list: achievement_unlocked events for the rules this call created.
                  A rule another writer unlocked first is not reported again.
        """
        unlocked = self.store.list_unlocked_achievements()
        events = []
        for rule_id in evaluate(stats, unlocked):
            rule = ACHIEVEMENTS[rule_id]
            if self.store.unlock_achievement(rule_id, rule["name"], stats):
                logger.info(f"Achievement unlocked: {rule['name']}")
                events.append(make_event(
                    ACHIEVEMENT_UNLOCKED,
                    achievement_id=rule_id,
                    name=rule["name"],
                    description=rule["description"],
                ))
        return events
