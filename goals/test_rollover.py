# test_rollover.py
import copy
import pytest
from datetime import date
from goals.testing import DictCache, InMemoryEventStore, local_dt
from goals.exceptions import RolloverAbortedError, StoreWriteError
from goals.rollover import (
    AUTO_ROLLOVER_MARKER_KEY,
    IDLE,
    FAILED,
    AutoRolloverGuard,
    WeekRolloverManager,
    build_weekly_record,
    current_monthly_champion,
    format_week_display,
    is_last_day_of_month,
    projects_before,
    resolve_rollover_week,
    week_bounds,
)
from goals.store import MONTHLY_CHAMPION_KEY, PENDING_ROLLOVER_KEY, STATUS_FLAGS_KEY

THURSDAY = date(2026, 10, 22)


def log(store, salesperson_id, count, timestamp=None):
    for _ in range(count):
        store.append_event({
            'salesperson_id': salesperson_id,
            'salesperson_name': salesperson_id.title(),
            'project_type_id': 'deck',
            'project_name': 'Deck',
            'location': 'regina',
            'timestamp': timestamp or local_dt(2026, 10, 21, 10),
        })


class TestWeekArithmetic:
    """Sunday to Saturday weeks"""

    def test_week_bounds(self):
        assert week_bounds(THURSDAY) == (date(2026, 10, 18), date(2026, 10, 24))
        assert week_bounds(date(2026, 10, 18)) == (date(2026, 10, 18), date(2026, 10, 24))
        assert week_bounds(date(2026, 10, 24)) == (date(2026, 10, 18), date(2026, 10, 24))

    def test_manual_targets_current_week(self):
        assert resolve_rollover_week(THURSDAY) == (date(2026, 10, 18), date(2026, 10, 24))
        assert resolve_rollover_week(date(2026, 10, 25)) == (date(2026, 10, 25), date(2026, 10, 31))

    def test_automatic_targets_week_that_just_ended(self):
        assert resolve_rollover_week(date(2026, 10, 25), automatic=True) == (date(2026, 10, 18), date(2026, 10, 24))

    def test_week_display(self):
        assert format_week_display(date(2026, 10, 18), date(2026, 10, 24)) == "Oct 18 - Oct 24"
        assert format_week_display(date(2026, 9, 27), date(2026, 10, 3)) == "Sep 27 - Oct 3"

    def test_last_day_of_month(self):
        assert is_last_day_of_month(date(2026, 10, 31)) is True
        assert is_last_day_of_month(date(2026, 2, 28)) is True
        assert is_last_day_of_month(date(2028, 2, 28)) is False
        assert is_last_day_of_month(THURSDAY) is False

    def test_projects_before(self):
        projects = [
            {'id': 1, 'timestamp': local_dt(2026, 10, 24, 23, 59)},
            {'id': 2, 'timestamp': local_dt(2026, 10, 25, 0, 1)},
            {'id': 3, 'timestamp': None},
        ]
        assert [p['id'] for p in projects_before(projects, date(2026, 10, 25))] == [1, 3]


class TestBuildWeeklyRecord:

    def test_summary_fields(self):
        projects = [
            {'id': 1, 'salesperson_id': 'pat', 'project_type_id': 'deck', 'location': 'regina',
             'timestamp': local_dt(2026, 10, 20)},
            {'id': 2, 'salesperson_id': 'karen', 'project_type_id': 'deck', 'location': 'regina',
             'timestamp': local_dt(2026, 10, 20)},
            {'id': 3, 'salesperson_id': 'karen', 'project_type_id': 'fence', 'location': 'saskatoon',
             'timestamp': local_dt(2026, 10, 21)},
        ]
        record = build_weekly_record(projects, 60, date(2026, 10, 18), date(2026, 10, 24))
        assert record == {
            'week_display': "Oct 18 - Oct 24",
            'week_start_date': date(2026, 10, 18),
            'week_end_date': date(2026, 10, 24),
            'completed': 3,
            'target': 60,
            'top_salesperson_name': "Karen",
            'top_salesperson_projects': 2,
        }

    def test_empty_week(self):
        record = build_weekly_record([], 60, date(2026, 10, 18), date(2026, 10, 24))
        assert record['completed'] == 0
        assert record['top_salesperson_name'] == "N/A"
        assert record['top_salesperson_projects'] == 0


class TestWeekRolloverManager:
    """Persist first, archive second"""

    def setup_method(self):
        self.store = InMemoryEventStore(goal=60)
        self.manager = WeekRolloverManager(self.store)

    def test_forty_two_projects_on_thursday(self):
        log(self.store, 'dale', 20)
        log(self.store, 'wade', 22)
        snapshot = self.store.list_live()

        result = self.manager.rollover(snapshot, invoked_on=THURSDAY)

        record = self.store.weekly_records[0]
        assert record['completed'] == 42
        assert record['target'] == 60
        assert record['top_salesperson_name'] == "Wade"
        assert record['top_salesperson_projects'] == 22
        assert record['week_end_date'] == date(2026, 10, 24)
        assert result['archived_count'] == 42
        assert all(p['archived'] for p in self.store.projects.values())
        assert self.store.list_live() == []
        assert self.manager.state == IDLE

    def test_projects_added_after_snapshot_stay_live(self):
        log(self.store, 'dale', 3)
        snapshot = self.store.list_live()
        log(self.store, 'pat', 2)

        result = self.manager.rollover(snapshot, invoked_on=THURSDAY)

        assert self.store.weekly_records[0]['completed'] == 3
        assert sorted(result['archived_ids']) == sorted(p['id'] for p in snapshot)
        assert [p['salesperson_id'] for p in self.store.list_live()] == ['pat', 'pat']

    def test_failed_record_leaves_board_untouched(self):
        log(self.store, 'dale', 5)
        before = copy.deepcopy(self.store.projects)
        self.store.fail_on.add('append_weekly_record')

        with pytest.raises(RolloverAbortedError):
            self.manager.rollover(self.store.list_live(), invoked_on=THURSDAY)

        assert self.store.projects == before
        assert 'archive_batch' not in self.store.calls
        assert 'backup_batch' not in self.store.calls
        assert self.manager.state == IDLE
        assert self.manager.last_outcome == FAILED
        assert self.store.settings[STATUS_FLAGS_KEY]['rollover_fail'] is True

    def test_unreadable_goal_aborts(self):
        log(self.store, 'dale', 1)
        self.store.fail_on.add('get_goal')

        with pytest.raises(RolloverAbortedError):
            self.manager.rollover(self.store.list_live(), invoked_on=THURSDAY)
        assert self.store.weekly_records == []
        assert len(self.store.list_live()) == 1

    def test_failed_archive_keeps_record(self):
        log(self.store, 'dale', 2)
        self.store.fail_on.add('archive_batch')

        with pytest.raises(StoreWriteError) as excinfo:
            self.manager.rollover(self.store.list_live(), invoked_on=THURSDAY)

        assert not isinstance(excinfo.value, RolloverAbortedError)
        assert len(self.store.weekly_records) == 1
        assert len(self.store.list_live()) == 2
        assert self.store.settings[PENDING_ROLLOVER_KEY] == {'record_id': 1, 'week_end_date': '2026-10-24'}

    def test_retry_after_failed_archive_reuses_record(self):
        log(self.store, 'dale', 5)
        self.store.fail_on.add('archive_batch')
        with pytest.raises(StoreWriteError):
            self.manager.rollover(self.store.list_live(), invoked_on=THURSDAY)

        self.store.fail_on.clear()
        result = self.manager.rollover(self.store.list_live(), invoked_on=THURSDAY)

        assert result['resumed'] is True
        assert result['record']['id'] == 1
        assert result['archived_count'] == 5
        assert [(r['week_end_date'], r['completed']) for r in self.store.weekly_records] == [(date(2026, 10, 24), 5)]
        assert self.store.list_live() == []
        assert self.store.settings[PENDING_ROLLOVER_KEY] == {}

    def test_unfinished_rollover_of_another_week_is_ignored(self):
        self.store.settings[PENDING_ROLLOVER_KEY] = {'record_id': 99, 'week_end_date': '2026-10-17'}
        log(self.store, 'dale', 1)

        result = self.manager.rollover(self.store.list_live(), invoked_on=THURSDAY)

        assert result['resumed'] is False
        assert len(self.store.weekly_records) == 1

    def test_event_without_id_is_not_backed_up(self):
        log(self.store, 'dale', 2)
        snapshot = self.store.list_live()
        snapshot.append({'salesperson_id': 'pat', 'project_type_id': 'deck', 'location': 'regina',
                         'timestamp': local_dt(2026, 10, 21, 11)})

        result = self.manager.rollover(snapshot, invoked_on=THURSDAY)

        assert result['backed_up'] is True
        assert result['archived_count'] == 2
        assert len(self.store.backups) == 2

    def test_backup_failure_does_not_abort(self):
        log(self.store, 'dale', 2)
        self.store.fail_on.add('backup_batch')

        result = self.manager.rollover(self.store.list_live(), invoked_on=THURSDAY)

        assert result['backed_up'] is False
        assert result['archived_count'] == 2
        assert self.store.settings[STATUS_FLAGS_KEY]['backup_fail'] is True

    def test_backup_tagged_with_week_label(self):
        log(self.store, 'dale', 2)
        result = self.manager.rollover(self.store.list_live(), invoked_on=THURSDAY)

        assert result['week_label'] == 'week-2026-10-18'
        assert {label for _, label in self.store.backups} == {'week-2026-10-18'}
        assert len(self.store.backups) == 2

    def test_archive_is_idempotent(self):
        log(self.store, 'dale', 2)
        snapshot = self.store.list_live()
        self.manager.rollover(snapshot, invoked_on=THURSDAY)

        assert self.store.archive_batch([p['id'] for p in snapshot]) == 0

    def test_empty_board_still_logs_week(self):
        result = self.manager.rollover([], invoked_on=THURSDAY)
        assert result['record']['completed'] == 0
        assert result['archived_count'] == 0

    def test_month_end_crowns_champion(self):
        log(self.store, 'karen', 3, timestamp=local_dt(2026, 10, 5))
        self.store.archive_batch(list(self.store.projects))
        log(self.store, 'pat', 2, timestamp=local_dt(2026, 10, 30))

        result = self.manager.rollover(self.store.list_live(), invoked_on=date(2026, 10, 31))

        champion = self.store.settings[MONTHLY_CHAMPION_KEY]
        assert champion['month'] == '2026-10'
        assert champion['salesperson_id'] == 'karen'
        assert champion['projects'] == 3
        assert result['monthly_champion'] == champion
        # The week's record only covers the snapshot
        assert self.store.weekly_records[0]['top_salesperson_name'] == "Pat"

    def test_no_champion_mid_month(self):
        log(self.store, 'karen', 3)
        result = self.manager.rollover(self.store.list_live(), invoked_on=THURSDAY)
        assert result['monthly_champion'] is None
        assert MONTHLY_CHAMPION_KEY not in self.store.settings

    def test_champion_failure_does_not_abort(self):
        log(self.store, 'karen', 1, timestamp=local_dt(2026, 10, 30))
        self.store.fail_on.add('list_events_between')

        result = self.manager.rollover(self.store.list_live(), invoked_on=date(2026, 10, 31))

        assert result['monthly_champion'] is None
        assert result['archived_count'] == 1
        assert self.store.settings[STATUS_FLAGS_KEY]['monthly_champion_fail'] is True


class TestCurrentMonthlyChampion:

    def test_hidden_after_month_ends(self):
        store = InMemoryEventStore()
        store.settings[MONTHLY_CHAMPION_KEY] = {'month': '2026-09', 'salesperson_name': 'Karen'}
        assert current_monthly_champion(store, date(2026, 9, 30))['salesperson_name'] == 'Karen'
        assert current_monthly_champion(store, date(2026, 10, 1)) is None

    def test_none_when_never_crowned(self):
        assert current_monthly_champion(InMemoryEventStore(), THURSDAY) is None


class TestAutoRolloverGuard:

    def setup_method(self):
        self.cache = DictCache()
        self.guard = AutoRolloverGuard(cache=self.cache)

    def test_only_on_sunday(self):
        assert self.guard.should_run(date(2026, 10, 25)) is True
        assert self.guard.should_run(date(2026, 10, 26)) is False

    def test_once_per_day(self):
        sunday = date(2026, 10, 25)
        self.guard.claim(sunday)
        assert self.cache.data[AUTO_ROLLOVER_MARKER_KEY] == '2026-10-25'
        assert self.guard.should_run(sunday) is False
        assert self.guard.should_run(date(2026, 11, 1)) is True
