# core/admin.py
from django.contrib import admin, messages
from django.utils.html import format_html, format_html_join
from core.models import ProjectEvent, ProjectBackup, AppSetting
from goals.exceptions import StoreWriteError
from goals.models import WeeklyRecord, PersonalBest, Achievement
from goals.store import DjangoEventStore

admin.site.site_header = "Sales Board"
admin.site.site_title = "Sales Board"
admin.site.index_title = "Sales Board Administration"


def render_json(value):
    """Format a JSON dict into a readable HTML list"""
    if not value:
        return "-"
    if isinstance(value, dict):
        return format_html(
            "<ul style='margin:0 0 0 1em;'>{}</ul>",
            format_html_join("", "<li>{}: {}</li>", sorted(value.items())),
        )
    return value


###############
# Projects
@admin.register(ProjectEvent)
class ProjectEventAdmin(admin.ModelAdmin):
    list_display = ('salesperson_name', 'project_name', 'location', 'timestamp', 'archived', 'backup_label')
    list_filter = ('archived', 'location', 'salesperson_id', 'project_type_id')
    search_fields = ('salesperson_name', 'project_name')
    date_hierarchy = 'timestamp'
    readonly_fields = ('archived_at', 'backup_label', 'backed_up_at')
    actions = ['restore_to_board']

    @admin.action(description="Restore selected archived projects to the board")
    def restore_to_board(self, request, queryset):
        ids = list(queryset.filter(archived=True).values_list('pk', flat=True))
        if not ids:
            self.message_user(request, "No archived projects selected.", messages.WARNING)
            return

        try:
            restored = DjangoEventStore().restore_batch(ids)
        except StoreWriteError as e:
            self.message_user(request, f"Restore failed: {e}", messages.ERROR)
            return
        self.message_user(request, f"{restored} project(s) restored to the board.", messages.SUCCESS)


@admin.register(ProjectBackup)
class ProjectBackupAdmin(admin.ModelAdmin):
    list_display = ('original_id', 'week_label', 'backed_up_at')
    list_filter = ('week_label',)
    readonly_fields = ('original_id', 'week_label', 'payload_display', 'backed_up_at')
    exclude = ('payload',)

    def payload_display(self, obj):
        return render_json(obj.payload)
    payload_display.short_description = "Payload"


@admin.register(AppSetting)
class AppSettingAdmin(admin.ModelAdmin):
    list_display = ('key', 'value_display', 'updated_at')

    def value_display(self, obj):
        return render_json(obj.value)
    value_display.short_description = "Value"


###############
# Weekly results
@admin.register(WeeklyRecord)
class WeeklyRecordAdmin(admin.ModelAdmin):
    list_display = (
        'week_display', 'completed', 'target', 'goal_met_display',
        'top_salesperson_name', 'top_salesperson_projects', 'manually_edited', 'logged_at',
    )
    list_filter = ('manually_edited',)
    readonly_fields = ('week_start_date', 'week_end_date', 'logged_at', 'manually_edited')

    def goal_met_display(self, obj):
        return "✓" if obj.goal_met else "✗"
    goal_met_display.short_description = "Goal met"

    def save_model(self, request, obj, form, change):
        # Edits never recompute from the archived projects; flag them instead
        if change and form.changed_data:
            obj.manually_edited = True
        super().save_model(request, obj, form, change)


@admin.register(PersonalBest)
class PersonalBestAdmin(admin.ModelAdmin):
    list_display = ('salesperson_name', 'weekly_best', 'best_week_start', 'achieved_date')
    ordering = ('-weekly_best',)


@admin.register(Achievement)
class AchievementAdmin(admin.ModelAdmin):
    list_display = ('name', 'rule_id', 'unlocked_at')
    readonly_fields = ('stats_display',)
    exclude = ('stats',)

    def stats_display(self, obj):
        return render_json(obj.stats)
    stats_display.short_description = "Stats at unlock"
