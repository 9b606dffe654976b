# goals/store.py
from django.db import DatabaseError, transaction
from django.utils import timezone
from core.models import ProjectEvent, ProjectBackup, AppSetting
from core.roster import get_default_weekly_goal
from core.signals import live_projects_changed, schedule_live_snapshot
from goals.exceptions import StoreReadError, StoreWriteError
from goals.models import WeeklyRecord, PersonalBest, Achievement
import logging

logger = logging.getLogger(__name__)

GOALS_KEY = 'goals'
STREAK_KEY = 'streak'
MILESTONES_KEY = 'milestones'
MONTHLY_CHAMPION_KEY = 'monthly_champion'
STATUS_FLAGS_KEY = 'status_flags'
PENDING_ROLLOVER_KEY = 'pending_rollover'

WEEKLY_RECORD_FIELDS = (
    'id', 'week_display', 'week_start_date', 'week_end_date', 'completed', 'target',
    'top_salesperson_name', 'top_salesperson_projects', 'logged_at', 'manually_edited',
)


class DjangoEventStore:
    """
    Event store backed by the Django ORM.

    Every database failure is converted into StoreReadError / StoreWriteError so
    callers never see backend specific exceptions.
    """

    ###############
    # Projects
    def append_event(self, data):
        try:
            project = ProjectEvent.objects.create(**data)
        except DatabaseError as e:
            logger.error(f"Failed to append project event {data}: {e}")
            raise StoreWriteError(f"Could not log project: {e}") from e
        return project.pk

    def list_live(self):
        try:
            return [p.as_event() for p in ProjectEvent.objects.live()]
        except DatabaseError as e:
            logger.error(f"Failed to read live projects: {e}")
            raise StoreReadError(f"Could not read live projects: {e}") from e

    def list_events_between(self, start, end):
        """All projects, archived included, with start <= timestamp < end."""
        try:
            qs = ProjectEvent.objects.filter(timestamp__gte=start, timestamp__lt=end)
            return [p.as_event() for p in qs]
        except DatabaseError as e:
            logger.error(f"Failed to read projects between {start} and {end}: {e}")
            raise StoreReadError(f"Could not read projects: {e}") from e

    def subscribe_live(self, callback):
        """Call `callback(projects)` with the full live set after every change."""
        def _deliver(sender, projects, **kwargs):
            callback(projects)

        live_projects_changed.connect(_deliver, weak=False)
        return lambda: live_projects_changed.disconnect(_deliver)

    def archive_batch(self, ids, archived_at=None):
        """Archive all ids in one UPDATE. Ids that are already archived are left alone."""
        ids = list(ids)
        if not ids:
            return 0

        archived_at = archived_at or timezone.now()
        try:
            with transaction.atomic():
                count = ProjectEvent.objects.filter(pk__in=ids, archived=False).update(
                    archived=True, archived_at=archived_at
                )
        except DatabaseError as e:
            logger.error(f"Archive batch of {len(ids)} projects failed: {e}")
            raise StoreWriteError(f"Could not archive projects: {e}") from e

        schedule_live_snapshot()
        return count

    def restore_batch(self, ids):
        ids = list(ids)
        try:
            with transaction.atomic():
                count = ProjectEvent.objects.filter(pk__in=ids, archived=True).update(
                    archived=False, archived_at=None
                )
        except DatabaseError as e:
            raise StoreWriteError(f"Could not restore projects: {e}") from e

        schedule_live_snapshot()
        return count

    def backup_batch(self, events, week_label):
        """Copy events into the backup set. Events without an id cannot be traced back and are skipped."""
        events = [event for event in events if event.get('id') is not None]
        if not events:
            return 0

        backed_up_at = timezone.now()
        rows = [
            ProjectBackup(original_id=event['id'], week_label=week_label, payload=event)
            for event in events
        ]
        try:
            with transaction.atomic():
                ProjectBackup.objects.bulk_create(rows, ignore_conflicts=True)
                ProjectEvent.objects.filter(pk__in=[event['id'] for event in events]).update(
                    backup_label=week_label, backed_up_at=backed_up_at
                )
        except DatabaseError as e:
            logger.error(f"Backup of {len(rows)} projects for {week_label} failed: {e}")
            raise StoreWriteError(f"Could not back up projects: {e}") from e
        return len(rows)

    ###############
    # Weekly goal and records
    def get_goal(self):
        default = get_default_weekly_goal()
        try:
            setting, created = AppSetting.objects.get_or_create(
                key=GOALS_KEY, defaults={'value': {'current_weekly_target': default}}
            )
        except DatabaseError as e:
            logger.error(f"Failed to read weekly goal: {e}")
            raise StoreReadError(f"Could not read weekly goal: {e}") from e

        if created:
            logger.info(f"Goals setting created with default target {default}")

        try:
            return int(setting.value.get('current_weekly_target') or default)
        except (AttributeError, TypeError, ValueError):
            logger.warning(f"Unreadable goals setting {setting.value!r}, using default {default}")
            return default

    def set_goal(self, target):
        value = dict(self.get_singleton(GOALS_KEY, {}) or {})
        value['current_weekly_target'] = int(target)
        self.set_singleton(GOALS_KEY, value)

    def append_weekly_record(self, data):
        try:
            record = WeeklyRecord.objects.create(**data)
        except DatabaseError as e:
            logger.error(f"Failed to save weekly record {data.get('week_display')}: {e}")
            raise StoreWriteError(f"Could not save weekly record: {e}") from e
        return record.pk

    def update_weekly_record(self, record_id, patch):
        try:
            updated = WeeklyRecord.objects.filter(pk=record_id).update(**patch)
        except DatabaseError as e:
            logger.error(f"Failed to update weekly record {record_id}: {e}")
            raise StoreWriteError(f"Could not update weekly record: {e}") from e

        if not updated:
            raise StoreWriteError(f"Weekly record {record_id} not found")

    def list_weekly_records(self):
        try:
            return list(WeeklyRecord.objects.values(*WEEKLY_RECORD_FIELDS))
        except DatabaseError as e:
            raise StoreReadError(f"Could not read weekly records: {e}") from e

    def get_weekly_record(self, record_id):
        try:
            return WeeklyRecord.objects.filter(pk=record_id).values(*WEEKLY_RECORD_FIELDS).first()
        except DatabaseError as e:
            raise StoreReadError(f"Could not read weekly record {record_id}: {e}") from e

    ###############
    # Singletons
    def get_singleton(self, key, default=None):
        try:
            return AppSetting.objects.get(key=key).value
        except AppSetting.DoesNotExist:
            return default
        except DatabaseError as e:
            logger.error(f"Failed to read setting {key}: {e}")
            raise StoreReadError(f"Could not read setting {key}: {e}") from e

    def set_singleton(self, key, value):
        try:
            AppSetting.objects.update_or_create(key=key, defaults={'value': value})
        except DatabaseError as e:
            logger.error(f"Failed to write setting {key}: {e}")
            raise StoreWriteError(f"Could not write setting {key}: {e}") from e

    def log_status_flag(self, key, error_message=None):
        """Set or clear a persistent error flag; never raises."""
        try:
            flags = dict(self.get_singleton(STATUS_FLAGS_KEY, {}) or {})
            if error_message:
                flags[key] = True
                flags[f"{key}_last_error"] = error_message
                flags[f"{key}_last_error_time"] = timezone.now().isoformat()
            else:
                flags[key] = False
                flags.pop(f"{key}_last_error", None)
                flags.pop(f"{key}_last_error_time", None)
            self.set_singleton(STATUS_FLAGS_KEY, flags)
        except (StoreReadError, StoreWriteError) as e:
            logger.error(f"Could not record status flag {key}: {e}")

    ###############
    # Achievements and personal bests
    def list_unlocked_achievements(self):
        try:
            return set(Achievement.objects.values_list('rule_id', flat=True))
        except DatabaseError as e:
            raise StoreReadError(f"Could not read achievements: {e}") from e

    def unlock_achievement(self, rule_id, name, stats=None):
        """Returns True only for the call that created the record."""
        try:
            _, created = Achievement.objects.get_or_create(
                rule_id=rule_id, defaults={'name': name, 'stats': stats or {}}
            )
        except DatabaseError as e:
            logger.error(f"Failed to unlock achievement {rule_id}: {e}")
            raise StoreWriteError(f"Could not unlock achievement {rule_id}: {e}") from e
        return created

    def get_personal_best(self, salesperson_id):
        try:
            best = PersonalBest.objects.filter(pk=salesperson_id).values(
                'salesperson_id', 'salesperson_name', 'weekly_best', 'achieved_date', 'best_week_start'
            ).first()
        except DatabaseError as e:
            raise StoreReadError(f"Could not read personal best for {salesperson_id}: {e}") from e
        return best

    def save_personal_best(self, salesperson_id, data):
        try:
            PersonalBest.objects.update_or_create(salesperson_id=salesperson_id, defaults=data)
        except DatabaseError as e:
            logger.error(f"Failed to save personal best for {salesperson_id}: {e}")
            raise StoreWriteError(f"Could not save personal best: {e}") from e

    def list_personal_bests(self):
        try:
            return list(PersonalBest.objects.values(
                'salesperson_id', 'salesperson_name', 'weekly_best', 'achieved_date'
            ))
        except DatabaseError as e:
            raise StoreReadError(f"Could not read personal bests: {e}") from e
