# core/models.py

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone


class ProjectEventQuerySet(models.QuerySet):
    def live(self):
        return self.filter(archived=False)

    def archived(self):
        return self.filter(archived=True)


class ProjectEvent(models.Model):
    """One completed customer project dropped onto a location bucket."""

    salesperson_id = models.CharField(max_length=50, db_index=True)
    salesperson_name = models.CharField(max_length=100)
    salesperson_initials = models.CharField(max_length=5, blank=True)
    project_type_id = models.CharField(max_length=50)
    project_name = models.CharField(max_length=100)
    project_icon = models.CharField(max_length=255, blank=True)
    location = models.CharField(max_length=50, db_index=True)
    timestamp = models.DateTimeField(default=timezone.now, db_index=True)

    archived = models.BooleanField(default=False, db_index=True)
    archived_at = models.DateTimeField(null=True, blank=True)
    backup_label = models.CharField(max_length=50, blank=True)
    backed_up_at = models.DateTimeField(null=True, blank=True)

    objects = ProjectEventQuerySet.as_manager()

    class Meta:
        ordering = ['-timestamp', '-id']
        indexes = [
            models.Index(fields=['archived', 'timestamp'], name='core_project_live_ts_idx'),
        ]

    def __str__(self):
        state = "archived" if self.archived else "live"
        return f"{self.salesperson_name} – {self.project_name} @ {self.location} ({state})"

    def as_event(self):
        return {
            'id': self.pk,
            'salesperson_id': self.salesperson_id,
            'salesperson_name': self.salesperson_name,
            'salesperson_initials': self.salesperson_initials,
            'project_type_id': self.project_type_id,
            'project_name': self.project_name,
            'project_icon': self.project_icon,
            'location': self.location,
            'timestamp': self.timestamp,
            'archived': self.archived,
            'archived_at': self.archived_at,
        }


class ProjectBackup(models.Model):
    original_id = models.BigIntegerField()
    week_label = models.CharField(max_length=50)
    payload = models.JSONField(default=dict, encoder=DjangoJSONEncoder)
    backed_up_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("original_id", "week_label")  # re-running a backup is a no-op
        ordering = ["-backed_up_at", "original_id"]

    def __str__(self):
        return f"Backup of project {self.original_id} ({self.week_label})"


class AppSetting(models.Model):
    """Key/value singletons: weekly goal, streak, milestones, monthly champion, status flags."""

    key = models.CharField(max_length=50, primary_key=True)
    value = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["key"]

    def __str__(self):
        return self.key
