# test_admin.py
import pytest
from datetime import date
from django.contrib.admin.sites import site
from django.urls import reverse
from django.utils import timezone
from core.models import ProjectEvent
from goals.models import WeeklyRecord

pytestmark = pytest.mark.django_db


def make_project(archived=False):
    return ProjectEvent.objects.create(
        salesperson_id='dale',
        salesperson_name='Dale',
        project_type_id='deck',
        project_name='Deck',
        location='regina',
        timestamp=timezone.now(),
        archived=archived,
    )


def make_record(completed=42):
    return WeeklyRecord.objects.create(
        week_display="Oct 18 - Oct 24",
        week_start_date=date(2026, 10, 18),
        week_end_date=date(2026, 10, 24),
        completed=completed,
        target=60,
        top_salesperson_name="Wade",
        top_salesperson_projects=22,
    )


class TestRestoreAction:

    def test_restores_only_archived(self, admin_client):
        archived = make_project(archived=True)
        live = make_project()

        response = admin_client.post(reverse('admin:core_projectevent_changelist'), {
            'action': 'restore_to_board',
            '_selected_action': [archived.pk, live.pk],
        }, follow=True)

        assert response.status_code == 200
        assert ProjectEvent.objects.live().count() == 2
        assert "1 project(s) restored to the board." in [str(m) for m in response.context['messages']]

    def test_nothing_archived_selected(self, admin_client):
        live = make_project()
        response = admin_client.post(reverse('admin:core_projectevent_changelist'), {
            'action': 'restore_to_board',
            '_selected_action': [live.pk],
        }, follow=True)
        assert "No archived projects selected." in [str(m) for m in response.context['messages']]


class TestWeeklyRecordAdmin:

    def test_goal_met_column(self):
        model_admin = site._registry[WeeklyRecord]
        assert model_admin.goal_met_display(make_record(completed=42)) == "✗"
        assert model_admin.goal_met_display(make_record(completed=60)) == "✓"

    def test_edit_marks_record_manual(self, admin_client):
        record = make_record()
        url = reverse('admin:goals_weeklyrecord_change', args=[record.pk])

        response = admin_client.post(url, {
            'week_display': record.week_display,
            'completed': 44,
            'target': 60,
            'top_salesperson_name': "Wade",
            'top_salesperson_projects': 22,
        })

        assert response.status_code == 302
        record.refresh_from_db()
        assert record.completed == 44
        assert record.manually_edited is True
