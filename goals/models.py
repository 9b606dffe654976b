# goals/models.py
from django.db import models


class WeeklyRecord(models.Model):
    week_display = models.CharField(max_length=50)
    week_start_date = models.DateField()
    week_end_date = models.DateField(db_index=True)
    completed = models.PositiveIntegerField(default=0)
    target = models.PositiveIntegerField()
    top_salesperson_name = models.CharField(max_length=100, default="N/A")
    top_salesperson_projects = models.PositiveIntegerField(default=0)
    logged_at = models.DateTimeField(auto_now_add=True)
    # Admin overrides are never recomputed from the archived projects
    manually_edited = models.BooleanField(default=False)

    class Meta:
        ordering = ["-week_end_date", "-logged_at"]

    def __str__(self):
        return f"{self.week_display}: {self.completed}/{self.target}"

    @property
    def goal_met(self):
        return self.completed >= self.target


class PersonalBest(models.Model):
    salesperson_id = models.CharField(max_length=50, primary_key=True)
    salesperson_name = models.CharField(max_length=100)
    weekly_best = models.PositiveIntegerField(default=0)
    achieved_date = models.DateTimeField(null=True, blank=True)
    best_week_start = models.DateField(null=True, blank=True)

    class Meta:
        ordering = ["-weekly_best", "salesperson_name"]

    def __str__(self):
        return f"{self.salesperson_name}: {self.weekly_best} projects/week"


class Achievement(models.Model):
    # rule_id as primary key collapses concurrent unlocks of the same rule
    rule_id = models.CharField(max_length=50, primary_key=True)
    name = models.CharField(max_length=100)
    unlocked_at = models.DateTimeField(auto_now_add=True)
    stats = models.JSONField(default=dict, blank=True, help_text="Stats snapshot at unlock time")

    class Meta:
        ordering = ["unlocked_at"]

    def __str__(self):
        return self.name
