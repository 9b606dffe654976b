# core/signals.py
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import Signal, receiver
from core.models import ProjectEvent
import logging

logger = logging.getLogger(__name__)

# Inbound channel: sent with `projects=[event dict, ...]`, the full live set,
# after every committed change to it.
live_projects_changed = Signal()

# Outbound channel: sent with `event={'type': ..., ...}` for every domain event
# (project logged, milestone reached, achievement unlocked, ...).
board_event = Signal()


def publish_live_snapshot():
    projects = [p.as_event() for p in ProjectEvent.objects.live()]
    responses = live_projects_changed.send_robust(sender=ProjectEvent, projects=projects)
    for receiver_func, response in responses:
        if isinstance(response, Exception):
            logger.error(f"Live snapshot receiver {receiver_func} failed: {response}")


def schedule_live_snapshot():
    transaction.on_commit(publish_live_snapshot)


@receiver(post_save, sender=ProjectEvent)
def project_saved(sender, instance, created, **kwargs):
    schedule_live_snapshot()


@receiver(post_delete, sender=ProjectEvent)
def project_deleted(sender, instance, **kwargs):
    schedule_live_snapshot()
