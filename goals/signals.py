# goals/signals.py
from django.conf import settings
from django.dispatch import receiver
from core.signals import board_event, live_projects_changed
from goals.board import SalesBoard
from goals.events import WEEK_ROLLED_OVER
from goals.notifications import post_board_event, send_weekly_summary
import logging

logger = logging.getLogger(__name__)


@receiver(live_projects_changed)
def auto_rollover_on_snapshot(sender, projects, **kwargs):
    """Give the Sunday rollover a chance to run on every live snapshot."""
    if not getattr(settings, 'AUTO_ROLLOVER_ON_SNAPSHOT', True):
        return

    result = SalesBoard().run_auto_rollover(projects=projects)
    if result and not result['success']:
        logger.error(f"Automatic rollover failed: {result['error_message']}")


@receiver(board_event)
def forward_board_event(sender, event, **kwargs):
    post_board_event(event)

    if event.get('type') == WEEK_ROLLED_OVER:
        send_weekly_summary(event['record'])
