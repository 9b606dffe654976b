# goals/testing.py
import copy
from datetime import datetime
from django.utils import timezone
from goals.exceptions import StoreReadError, StoreWriteError
from goals.store import GOALS_KEY, STATUS_FLAGS_KEY

READ_OPERATIONS = {
    'list_live', 'list_events_between', 'get_goal', 'list_weekly_records', 'get_singleton',
    'list_unlocked_achievements', 'get_personal_best', 'list_personal_bests', 'get_weekly_record',
}


class InMemoryEventStore:
    """
    Dict-backed stand-in for DjangoEventStore.

    Add an operation name to `fail_on` to make it raise the matching store error.
    """

    def __init__(self, goal=60):
        self.projects = {}
        self.next_id = 1
        self.settings = {GOALS_KEY: {'current_weekly_target': goal}}
        self.weekly_records = []
        self.backups = {}
        self.achievements = {}
        self.personal_bests = {}
        self.subscribers = []
        self.fail_on = set()
        self.calls = []

    def _check(self, operation):
        self.calls.append(operation)
        if operation in self.fail_on:
            error = StoreReadError if operation in READ_OPERATIONS else StoreWriteError
            raise error(f"{operation} failed")

    def _notify(self):
        for callback in list(self.subscribers):
            callback(self.list_live())

    # Projects
    def append_event(self, data):
        self._check('append_event')
        project_id = self.next_id
        self.next_id += 1
        self.projects[project_id] = dict(data, id=project_id, archived=False, archived_at=None)
        self._notify()
        return project_id

    def list_live(self):
        self._check('list_live')
        live = [dict(p) for p in self.projects.values() if not p['archived']]
        return sorted(live, key=lambda p: (p['timestamp'], p['id']), reverse=True)

    def list_events_between(self, start, end):
        self._check('list_events_between')
        return [dict(p) for p in self.projects.values() if start <= p['timestamp'] < end]

    def subscribe_live(self, callback):
        self.subscribers.append(callback)
        return lambda: self.subscribers.remove(callback)

    def archive_batch(self, ids, archived_at=None):
        self._check('archive_batch')
        archived_at = archived_at or timezone.now()
        count = 0
        for project_id in ids:
            project = self.projects.get(project_id)
            if project and not project['archived']:
                project['archived'] = True
                project['archived_at'] = archived_at
                count += 1
        self._notify()
        return count

    def restore_batch(self, ids):
        self._check('restore_batch')
        count = 0
        for project_id in ids:
            project = self.projects.get(project_id)
            if project and project['archived']:
                project['archived'] = False
                project['archived_at'] = None
                count += 1
        self._notify()
        return count

    def backup_batch(self, events, week_label):
        self._check('backup_batch')
        events = [event for event in events if event.get('id') is not None]
        for event in events:
            self.backups.setdefault((event['id'], week_label), dict(event))
        return len(events)

    # Goal and weekly records
    def get_goal(self):
        self._check('get_goal')
        return self.settings[GOALS_KEY]['current_weekly_target']

    def set_goal(self, target):
        self._check('set_goal')
        self.settings[GOALS_KEY] = {'current_weekly_target': int(target)}

    def append_weekly_record(self, data):
        self._check('append_weekly_record')
        record = dict(data, id=len(self.weekly_records) + 1, logged_at=timezone.now(), manually_edited=False)
        self.weekly_records.append(record)
        return record['id']

    def update_weekly_record(self, record_id, patch):
        self._check('update_weekly_record')
        for record in self.weekly_records:
            if record['id'] == record_id:
                record.update(patch)
                return
        raise StoreWriteError(f"Weekly record {record_id} not found")

    def list_weekly_records(self):
        self._check('list_weekly_records')
        return [dict(r) for r in reversed(self.weekly_records)]

    def get_weekly_record(self, record_id):
        self._check('get_weekly_record')
        for record in self.weekly_records:
            if record['id'] == record_id:
                return dict(record)
        return None

    # Singletons
    def get_singleton(self, key, default=None):
        self._check('get_singleton')
        return copy.deepcopy(self.settings.get(key, default))

    def set_singleton(self, key, value):
        self._check('set_singleton')
        self.settings[key] = copy.deepcopy(value)

    def log_status_flag(self, key, error_message=None):
        flags = self.settings.setdefault(STATUS_FLAGS_KEY, {})
        flags[key] = bool(error_message)
        if error_message:
            flags[f"{key}_last_error"] = error_message

    # Achievements and personal bests
    def list_unlocked_achievements(self):
        self._check('list_unlocked_achievements')
        return set(self.achievements)

    def unlock_achievement(self, rule_id, name, stats=None):
        self._check('unlock_achievement')
        if rule_id in self.achievements:
            return False
        self.achievements[rule_id] = {'name': name, 'stats': stats or {}}
        return True

    def get_personal_best(self, salesperson_id):
        self._check('get_personal_best')
        best = self.personal_bests.get(salesperson_id)
        return dict(best) if best else None

    def save_personal_best(self, salesperson_id, data):
        self._check('save_personal_best')
        self.personal_bests[salesperson_id] = dict(data, salesperson_id=salesperson_id)

    def list_personal_bests(self):
        self._check('list_personal_bests')
        return [dict(b) for b in self.personal_bests.values()]


class DictCache:
    def __init__(self):
        self.data = {}

    def get(self, key, default=None):
        return self.data.get(key, default)

    def set(self, key, value, timeout=None):
        self.data[key] = value


def local_dt(year, month, day, hour=12, minute=0):
    """Aware datetime in the board's time zone."""
    return timezone.make_aware(datetime(year, month, day, hour, minute))


def make_project(project_id, salesperson_id='dale', project_type_id='deck', location='regina',
                 timestamp=None, archived=False):
    return {
        'id': project_id,
        'salesperson_id': salesperson_id,
        'salesperson_name': salesperson_id.title(),
        'project_type_id': project_type_id,
        'project_name': project_type_id.title(),
        'location': location,
        'timestamp': timestamp or local_dt(2026, 10, 22),
        'archived': archived,
    }
