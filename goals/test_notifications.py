# test_notifications.py
import json
import pytest
import requests
from datetime import date
from unittest.mock import Mock, patch
from goals.events import make_event, MILESTONE_REACHED, WEEK_ROLLED_OVER
from goals.notifications import (
    TIPS_MET,
    TIPS_NOT_MET,
    create_email_content,
    post_board_event,
    send_weekly_summary,
)
from goals.signals import forward_board_event

RECORD = {
    'id': 7,
    'week_display': "Oct 18 - Oct 24",
    'week_start_date': date(2026, 10, 18),
    'week_end_date': date(2026, 10, 24),
    'completed': 42,
    'target': 60,
    'top_salesperson_name': "Wade",
    'top_salesperson_projects': 22,
}


class TestEmailContent:

    def test_goal_missed(self):
        subject, body = create_email_content(RECORD)
        assert subject == "Sales Board Weekly Summary: Oct 18 - Oct 24"
        assert "Projects completed: 42 of 60." in body
        assert "18 short of the weekly goal" in body
        assert "Top salesperson: Wade with 22 projects." in body
        assert body.rsplit("\n", 1)[-1] in TIPS_NOT_MET

    def test_goal_met(self):
        subject, body = create_email_content(dict(RECORD, completed=61))
        assert "The team met its weekly goal." in body
        assert body.rsplit("\n", 1)[-1] in TIPS_MET

    def test_no_top_salesperson(self):
        _, body = create_email_content(dict(RECORD, completed=0, top_salesperson_name="N/A"))
        assert "Top salesperson" not in body


class TestSendWeeklySummary:

    def test_no_recipients(self, settings, mailoutbox):
        settings.WEEKLY_SUMMARY_RECIPIENTS = []
        result = send_weekly_summary(RECORD)
        assert result['success'] is False
        assert mailoutbox == []

    def test_sends_email(self, settings, mailoutbox):
        settings.WEEKLY_SUMMARY_RECIPIENTS = ['sales@example.com']
        result = send_weekly_summary(RECORD)

        assert result['success'] is True
        assert len(mailoutbox) == 1
        assert mailoutbox[0].to == ['sales@example.com']
        assert mailoutbox[0].subject == result['subject']

    @patch('goals.notifications.send_mail', side_effect=ConnectionRefusedError("smtp down"))
    def test_smtp_failure_is_reported(self, mock_send_mail, settings):
        settings.WEEKLY_SUMMARY_RECIPIENTS = ['sales@example.com']
        result = send_weekly_summary(RECORD)
        assert result['success'] is False
        assert "smtp down" in result['error_message']


class TestPostBoardEvent:

    def test_noop_without_webhook(self, settings):
        settings.CELEBRATION_WEBHOOK_URL = ''
        with patch('goals.notifications.requests.post') as mock_post:
            result = post_board_event(make_event(MILESTONE_REACHED, milestone=50))
        mock_post.assert_not_called()
        assert result['success'] is False

    def test_posts_json(self, settings):
        settings.CELEBRATION_WEBHOOK_URL = 'https://hooks.example.com/board'
        response = Mock(status_code=204)
        with patch('goals.notifications.requests.post', return_value=response) as mock_post:
            result = post_board_event(make_event(WEEK_ROLLED_OVER, record=RECORD))

        assert result['success'] is True
        args, kwargs = mock_post.call_args
        assert args == ('https://hooks.example.com/board',)
        assert kwargs['timeout'] == 5
        payload = json.loads(kwargs['data'])
        assert payload['type'] == WEEK_ROLLED_OVER
        assert payload['record']['week_end_date'] == '2026-10-24'

    def test_webhook_failure_never_raises(self, settings):
        settings.CELEBRATION_WEBHOOK_URL = 'https://hooks.example.com/board'
        with patch('goals.notifications.requests.post', side_effect=requests.ConnectionError("refused")):
            result = post_board_event(make_event(MILESTONE_REACHED, milestone=50))
        assert result['success'] is False
        assert "refused" in result['error_message']


class TestForwardBoardEvent:

    @patch('goals.signals.send_weekly_summary')
    @patch('goals.signals.post_board_event')
    def test_rollover_sends_summary(self, mock_post, mock_summary):
        event = make_event(WEEK_ROLLED_OVER, record=RECORD, automatic=False)
        forward_board_event(sender='goals', event=event)
        mock_post.assert_called_once_with(event)
        mock_summary.assert_called_once_with(RECORD)

    @patch('goals.signals.send_weekly_summary')
    @patch('goals.signals.post_board_event')
    def test_other_events_only_posted(self, mock_post, mock_summary):
        forward_board_event(sender='goals', event=make_event(MILESTONE_REACHED, milestone=25))
        mock_post.assert_called_once()
        mock_summary.assert_not_called()
