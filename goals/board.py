# goals/board.py
from django.core.exceptions import ValidationError
from django.utils import timezone
from core.forms import WeeklyGoalForm, WeeklyRecordEditForm
from core.roster import (
    find_location, find_project_type, find_salesperson,
    get_locations, get_project_types, get_salespersons,
)
from goals.achievements import AchievementEvaluator
from goals.aggregation import instant_stats, leaderboard, location_totals, project_type_popularity
from goals.events import make_event, publish, PROJECT_LOGGED, WEEK_ROLLED_OVER
from goals.exceptions import RolloverAbortedError, SalesBoardError, StoreReadError, StoreWriteError
from goals.milestones import MilestoneCelebrationTrigger, completion_percentage
from goals.rollover import (
    AutoRolloverGuard, WeekRolloverManager, current_monthly_champion, projects_before, week_bounds,
)
from goals.store import DjangoEventStore
from goals.streaks import PersonalBestTracker, StreakTracker
import logging

logger = logging.getLogger(__name__)


def validate_selection(salesperson_id, project_type_id, location_id):
    """
    Resolve the three ids against the roster.

    Raises:
        ValidationError: keyed by field, before anything is written
    """
    salesperson = find_salesperson(salesperson_id)
    project_type = find_project_type(project_type_id)
    location = find_location(location_id)

    errors = {}
    if not salesperson:
        errors['salesperson_id'] = f"Unknown salesperson: {salesperson_id!r}"
    if not project_type:
        errors['project_type_id'] = f"Unknown project type: {project_type_id!r}"
    if not location:
        errors['location_id'] = f"Unknown location: {location_id!r}"
    if errors:
        raise ValidationError(errors)

    return salesperson, project_type, location


class BoardState:
    """The live snapshot and goal every board view is computed from."""

    def __init__(self):
        self.live_projects = []
        self.weekly_goal = None
        self.loaded = False
        self.stale = False
        self.last_error = None
        self.updated_at = None


class SalesBoard:
    """
    Coordinates the board: owns its state and hands each tracker the store.

    Queries are pure functions of the current snapshot. Commands return a
    result dict ({'success', 'error_message', 'events', ...}) instead of
    raising store errors; invalid input raises ValidationError.
    """

    def __init__(self, store=None, auto_guard=None):
        self.store = store or DjangoEventStore()
        self.state = BoardState()
        self.streaks = StreakTracker(self.store)
        self.personal_bests = PersonalBestTracker(self.store)
        self.achievements = AchievementEvaluator(self.store)
        self.milestones = MilestoneCelebrationTrigger(self.store)
        self.rollover_manager = WeekRolloverManager(self.store)
        self.auto_guard = auto_guard or AutoRolloverGuard()

    ###############
    # Live snapshot
    def handle_live_snapshot(self, projects):
        self.state.live_projects = list(projects or [])
        self.state.loaded = True
        self.state.stale = False
        self.state.last_error = None
        self.state.updated_at = timezone.now()

    def refresh(self):
        """Reload the live set and goal. On a read failure the old snapshot stays, marked stale."""
        try:
            projects = self.store.list_live()
            goal = self.store.get_goal()
        except StoreReadError as e:
            self.state.stale = True
            self.state.last_error = str(e)
            logger.warning(f"Board refresh failed, keeping stale snapshot: {e}")
            return False

        self.handle_live_snapshot(projects)
        self.state.weekly_goal = goal
        return True

    def _ensure_loaded(self):
        if not self.state.loaded or self.state.stale:
            self.refresh()

    ###############
    # Queries
    def get_leaderboard(self):
        self._ensure_loaded()
        return leaderboard(self.state.live_projects, get_salespersons())

    def get_location_totals(self):
        self._ensure_loaded()
        return location_totals(self.state.live_projects, get_locations())

    def get_project_type_popularity(self):
        self._ensure_loaded()
        return project_type_popularity(self.state.live_projects, get_project_types())

    def get_weekly_goal(self):
        self._ensure_loaded()
        if self.state.weekly_goal is None:
            self.state.weekly_goal = self.store.get_goal()
        return self.state.weekly_goal

    def get_streak(self):
        return self.streaks.get_state()

    def get_instant_stats(self, projects=None, streak=None):
        """
        Stats snapshot for achievements and the stats view. goal_progress is
        left unrounded so achievements never see 99.96 as 100.

        Args:
            projects: events to compute from; defaults to the live snapshot
            streak: streak state, read from the store when not given
        """
        if projects is None:
            self._ensure_loaded()
            projects = self.state.live_projects

        stats = instant_stats(projects, get_salespersons(), get_project_types())
        streak = streak or self.streaks.get_state()
        goal = self.get_weekly_goal()

        stats['current_streak'] = streak.get('current_streak', 0)
        stats['best_streak'] = streak.get('best_streak', 0)
        stats['weekly_goal'] = goal
        stats['goal_progress'] = completion_percentage(stats['weekly_projects'], goal)
        return stats

    def get_weekly_records(self):
        return self.store.list_weekly_records()

    def get_monthly_champion(self, today=None):
        today = today or timezone.localdate()
        try:
            return current_monthly_champion(self.store, today)
        except StoreReadError as e:
            logger.warning(f"Monthly champion unavailable: {e}")
            return None

    def get_summary(self):
        stats = self.get_instant_stats()
        return {
            'weekly_goal': stats['weekly_goal'],
            'completed': stats['weekly_projects'],
            'goal_progress': round(stats['goal_progress'], 1),
            'last_milestone_reached': self.milestones.last_reached,
            'streak': {'current_streak': stats['current_streak'], 'best_streak': stats['best_streak']},
            'leaderboard': self.get_leaderboard(),
            'location_totals': self.get_location_totals(),
            'project_type_popularity': self.get_project_type_popularity(),
            'monthly_champion': self.get_monthly_champion(),
            'personal_bests': self.store.list_personal_bests(),
            'stale': self.state.stale,
        }

    ###############
    # Commands
    def _side_step(self, result, label, func, *args):
        """Run a best-effort step after the main write; failures become warnings."""
        try:
            return func(*args)
        except SalesBoardError as e:
            logger.error(f"{label} update failed: {e}")
            result['warnings'].append(f"{label}: {e}")
            return None

    def log_project(self, salesperson_id, project_type_id, location_id, now=None):
        """
        Log one completed project and update streak, personal best,
        achievements and milestones.

        Returns:
            dict: {
                'success': bool,
                'project_id': int or None,
                'events': list of domain events, project_logged first,
                'warnings': side-state updates that failed,
                'error_message': str or None
            }

        Raises:
            ValidationError: unknown salesperson, project type or location
        """
        salesperson, project_type, location = validate_selection(
            salesperson_id, project_type_id, location_id
        )
        now = now or timezone.now()
        result = {
            'success': False,
            'project_id': None,
            'events': [],
            'warnings': [],
            'error_message': None,
        }

        data = {
            'salesperson_id': salesperson['id'],
            'salesperson_name': salesperson['name'],
            'salesperson_initials': salesperson.get('initials', ''),
            'project_type_id': project_type['id'],
            'project_name': project_type['name'],
            'project_icon': project_type.get('icon', ''),
            'location': location['id'],
            'timestamp': now,
        }

        try:
            project_id = self.store.append_event(data)
        except StoreWriteError as e:
            result['error_message'] = str(e)
            return result

        result['success'] = True
        result['project_id'] = project_id
        logger.info(f"Logged {project_type['name']} for {salesperson['name']} in {location['name']}")

        if not self.refresh():
            result['warnings'].append(f"board refresh: {self.state.last_error}")
            self.state.live_projects = [dict(data, id=project_id, archived=False)] + self.state.live_projects

        events = [make_event(
            PROJECT_LOGGED,
            project_id=project_id,
            salesperson_id=salesperson['id'],
            salesperson_name=salesperson['name'],
            project_type_id=project_type['id'],
            project_name=project_type['name'],
            location=location['id'],
        )]

        today = timezone.localdate(now)
        week_start, _ = week_bounds(today)

        streak = self._side_step(result, "streak", self.streaks.record_activity, today)
        personal_best = self._side_step(
            result, "personal best", self.personal_bests.record_activity,
            salesperson['id'], salesperson['name'], week_start, self.state.live_projects, now,
        )
        if personal_best:
            events.append(personal_best)

        stats = self._side_step(result, "stats", self.get_instant_stats, None, streak)
        if stats:
            events.extend(self._side_step(
                result, "achievements", self.achievements.evaluate_and_unlock, stats
            ) or [])
            milestone = self._side_step(
                result, "milestones", self.milestones.check, stats['weekly_projects'], stats['weekly_goal']
            )
            if milestone:
                events.append(milestone)

        result['events'] = events
        publish(events)
        return result

    def trigger_manual_rollover(self, confirmed, today=None):
        """
        Close the current week. Requires explicit confirmation and ignores
        the automatic-rollover marker.
        """
        if not confirmed:
            return {
                'success': False,
                'error_message': "Rollover must be confirmed",
                'record': None,
                'events': [],
                'warnings': [],
            }

        try:
            projects = self.store.list_live()
        except StoreReadError as e:
            return {'success': False, 'error_message': str(e), 'record': None, 'events': [], 'warnings': []}

        return self._rollover(projects, today or timezone.localdate(), automatic=False)

    def run_auto_rollover(self, today=None, projects=None):
        """
        Automatic Sunday rollover, at most once per day per client.

        Only projects logged before today, the first day of the new week, are
        archived; anything already logged this week stays on the board.

        The marker is claimed before rolling over, so a failed attempt is not
        retried automatically; the manual rollover remains available.

        Returns:
            dict or None: None when the guard did not allow a run
        """
        today = today or timezone.localdate()
        if not self.auto_guard.should_run(today):
            return None
        self.auto_guard.claim(today)

        if projects is None:
            try:
                projects = self.store.list_live()
            except StoreReadError as e:
                logger.error(f"Automatic rollover skipped, live projects unreadable: {e}")
                return {'success': False, 'error_message': str(e), 'record': None, 'events': [], 'warnings': []}

        projects = projects_before(projects, week_bounds(today)[0])
        if not projects:
            logger.info(f"Automatic rollover on {today}: nothing left from last week")
            return {'success': True, 'skipped': True, 'record': None, 'events': [], 'warnings': []}

        return self._rollover(projects, today, automatic=True)

    def _rollover(self, projects, invoked_on, automatic):
        result = {
            'success': False,
            'error_message': None,
            'record': None,
            'archived_count': 0,
            'events': [],
            'warnings': [],
        }

        try:
            outcome = self.rollover_manager.rollover(projects, invoked_on=invoked_on, automatic=automatic)
        except RolloverAbortedError as e:
            result['error_message'] = str(e)
            return result
        except StoreWriteError as e:
            result['error_message'] = str(e)
            self.refresh()
            return result

        result.update(outcome)
        result['success'] = True
        if not outcome['backed_up']:
            result['warnings'].append(f"backup for {outcome['week_label']} failed")

        self._side_step(result, "milestone reset", self.milestones.reset)

        events = [make_event(WEEK_ROLLED_OVER, record=outcome['record'], automatic=automatic)]
        stats = self._side_step(result, "stats", self.get_instant_stats, projects)
        if stats:
            events.extend(self._side_step(
                result, "achievements", self.achievements.evaluate_and_unlock, stats
            ) or [])

        self.refresh()
        result['events'] = events
        publish(events)
        return result

    def update_weekly_goal(self, target):
        form = WeeklyGoalForm(data={'target': target})
        if not form.is_valid():
            raise ValidationError(form.errors.as_data())

        target = form.cleaned_data['target']
        try:
            self.store.set_goal(target)
        except SalesBoardError as e:
            return {'success': False, 'error_message': str(e), 'target': None}

        self.state.weekly_goal = target
        logger.info(f"Weekly goal set to {target}")
        return {'success': True, 'error_message': None, 'target': target}

    def edit_weekly_record(self, record_id, patch):
        """Admin override; the record is marked manually_edited and not recomputed."""
        form = WeeklyRecordEditForm(data=patch or {})
        if not form.is_valid():
            raise ValidationError(form.errors.as_data())

        changes = form.patch()
        changes['manually_edited'] = True
        try:
            self.store.update_weekly_record(record_id, changes)
        except StoreWriteError as e:
            return {'success': False, 'error_message': str(e)}

        logger.info(f"Weekly record {record_id} edited: {sorted(changes)}")
        return {'success': True, 'error_message': None}
