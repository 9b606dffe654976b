# core/management/commands/seed_projects.py

from datetime import datetime, time, timedelta
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone
from core.models import ProjectEvent
from core.roster import get_locations, get_project_types, get_salespersons
from core.signals import schedule_live_snapshot
import random


class Command(BaseCommand):
    help = 'Bulk create random live projects across the roster for demos'

    def add_arguments(self, parser):
        parser.add_argument(
            '--count',
            type=int,
            default=30,
            help='Number of projects to create (default: 30)'
        )
        parser.add_argument(
            '--days',
            type=int,
            default=None,
            help='Spread projects over the last N days (default: since the start of the current week)'
        )
        parser.add_argument(
            '--seed',
            type=int,
            help='Random seed, for repeatable demo data'
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be created without actually creating'
        )

    def handle(self, *args, **options):
        count = options['count']
        dry_run = options['dry_run']
        rng = random.Random(options.get('seed'))

        now = timezone.now()
        today = timezone.localdate(now)
        if options['days']:
            start_day = today - timedelta(days=options['days'] - 1)
        else:
            # Sunday of the current week
            start_day = today - timedelta(days=(today.weekday() + 1) % 7)
        window_start = timezone.make_aware(datetime.combine(start_day, time.min))
        window_seconds = max(int((now - window_start).total_seconds()), 1)

        if dry_run:
            self.stdout.write(self.style.WARNING("🧪 DRY RUN MODE - No projects will be created"))

        self.stdout.write(f"Creating {count} projects between {start_day} and {today}:")

        salespersons = get_salespersons()
        project_types = get_project_types()
        locations = get_locations()

        projects = []
        for _ in range(count):
            salesperson = rng.choice(salespersons)
            project_type = rng.choice(project_types)
            location = rng.choice(locations)
            timestamp = window_start + timedelta(seconds=rng.randrange(window_seconds))

            projects.append(ProjectEvent(
                salesperson_id=salesperson['id'],
                salesperson_name=salesperson['name'],
                salesperson_initials=salesperson.get('initials', ''),
                project_type_id=project_type['id'],
                project_name=project_type['name'],
                project_icon=project_type.get('icon', ''),
                location=location['id'],
                timestamp=timestamp,
            ))
            if dry_run:
                self.stdout.write(
                    f"  📋 Would create: {salesperson['name']} - {project_type['name']} "
                    f"@ {location['name']} ({timezone.localtime(timestamp).strftime('%a %H:%M')})"
                )

        if dry_run:
            self.stdout.write(f"\n🧪 DRY RUN COMPLETE - Would have created {count} projects")
            return

        with transaction.atomic():
            created = ProjectEvent.objects.bulk_create(projects)
            # bulk_create skips post_save
            schedule_live_snapshot()

        self.stdout.write(f"\n🎉 SUCCESS!")
        self.stdout.write(f"Created {len(created)} live projects")
