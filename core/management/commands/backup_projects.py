# core/management/commands/backup_projects.py
from django.core.management.base import BaseCommand, CommandError
from django.core.serializers.json import DjangoJSONEncoder
from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone
from datetime import timedelta
from google.cloud import storage
from google.oauth2 import service_account
from core.models import ProjectBackup
import json
import os
import logging

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Copy the archived-project backups to Google Cloud Storage as JSON and prune old exports'

    RETENTION_WEEKS = 52
    EXPORT_PREFIX = 'project-backups/'

    def add_arguments(self, parser):
        parser.add_argument(
            '--week',
            type=str,
            help='Export a single week label only (e.g. week-2026-10-18)',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Build the export but do not upload, prune or email',
        )
        parser.add_argument(
            '--test-connection',
            action='store_true',
            help='Check the bucket is reachable, then exit',
        )

    @property
    def bucket_name(self):
        return getattr(settings, 'GCS_BACKUP_BUCKET', 'salesboard-backups')

    def handle(self, *args, **options):
        self.dry_run = options['dry_run']
        week = options.get('week')
        started_at = timezone.now()

        if options['test_connection']:
            return self.test_gcs_connection()

        if self.dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN - nothing will be uploaded\n"))
        self.stdout.write(f"Exporting {week or 'all weeks'} at {started_at.strftime('%Y-%m-%d %H:%M:%S')}")

        try:
            payload, row_count = self.build_export(week)
            self.stdout.write(self.style.SUCCESS(f"✓ Collected {row_count} backup row(s)"))

            blob_name = self.export_blob_name(started_at, week)
            if self.dry_run:
                self.stdout.write(f"  Would upload gs://{self.bucket_name}/{blob_name} ({len(payload) / 1024:.1f} KB)")
                return

            bucket = self.get_gcs_client().bucket(self.bucket_name)
            self.upload_to_gcs(bucket, blob_name, payload)
            self.stdout.write(self.style.SUCCESS(f"✓ Uploaded gs://{self.bucket_name}/{blob_name}"))

            pruned = self.cleanup_old_exports(bucket)
            self.stdout.write(self.style.SUCCESS(f"✓ Deleted {pruned} old export(s)"))
        except Exception as e:
            logger.error(f"Project backup export failed: {e}")
            self.stderr.write(self.style.ERROR(f"✗ Export failed: {e}"))
            self.notify_admins(
                "✗ Sales Board backup export FAILED",
                f"The export of {week or 'all weeks'} failed:\n\n{e}\n\n"
                "The backup rows are still in the database; only the offsite copy is missing.",
            )
            raise

        summary = (
            f"{row_count} project backup row(s) exported to gs://{self.bucket_name}/{blob_name} "
            f"in {(timezone.now() - started_at).total_seconds():.1f}s; "
            f"{pruned} export(s) older than {self.RETENTION_WEEKS} weeks pruned."
        )
        self.stdout.write("\n" + summary)
        self.notify_admins("✓ Sales Board backup export complete", summary)

    def get_gcs_client(self):
        credentials_path = getattr(settings, 'GCS_CREDENTIALS_PATH', None)
        if not credentials_path:
            raise CommandError("GCS_CREDENTIALS_PATH is not set")
        if not os.path.exists(credentials_path):
            raise CommandError(f"GCS credentials file not found: {credentials_path}")

        credentials = service_account.Credentials.from_service_account_file(credentials_path)
        return storage.Client(credentials=credentials, project=credentials.project_id)

    def build_export(self, week_label=None):
        """JSON document of the backup rows, one entry per archived project."""
        backups = ProjectBackup.objects.order_by('week_label', 'original_id')
        if week_label:
            backups = backups.filter(week_label=week_label)

        rows = [
            {
                'original_id': backup.original_id,
                'week_label': backup.week_label,
                'backed_up_at': backup.backed_up_at,
                'project': backup.payload,
            }
            for backup in backups
        ]
        document = {
            'exported_at': timezone.now(),
            'week_label': week_label,
            'projects': rows,
        }
        return json.dumps(document, cls=DjangoJSONEncoder, indent=2), len(rows)

    def export_blob_name(self, started_at, week_label=None):
        suffix = f"-{week_label}" if week_label else ""
        return f"{self.EXPORT_PREFIX}salesboard-projects-{started_at.strftime('%Y%m%d_%H%M%S')}{suffix}.json"

    def upload_to_gcs(self, bucket, blob_name, payload):
        bucket.blob(blob_name).upload_from_string(payload, content_type='application/json')
        logger.info(f"Uploaded {blob_name} to {self.bucket_name}")

    def cleanup_old_exports(self, bucket):
        cutoff = timezone.now() - timedelta(weeks=self.RETENTION_WEEKS)
        pruned = 0
        for blob in bucket.list_blobs(prefix=self.EXPORT_PREFIX):
            if blob.time_created < cutoff:
                self.stdout.write(f"  Pruning {blob.name}")
                blob.delete()
                pruned += 1
        return pruned

    def notify_admins(self, subject, body):
        """Best effort: a mail failure never changes the outcome of the export."""
        if self.dry_run:
            return

        from_email = getattr(settings, 'DEFAULT_FROM_EMAIL', 'salesboard@localhost')
        recipients = getattr(settings, 'ADMIN_NOTIFICATION_EMAIL', [from_email])
        if isinstance(recipients, str):
            recipients = [recipients]
        if not recipients:
            return

        try:
            send_mail(subject=subject, message=body, from_email=from_email, recipient_list=recipients)
        except Exception as e:
            logger.error(f"Backup notification email not sent: {e}")

    def test_gcs_connection(self):
        try:
            bucket = self.get_gcs_client().bucket(self.bucket_name)
            if not bucket.exists():
                self.stderr.write(self.style.ERROR(f"✗ Bucket {self.bucket_name} does not exist"))
                return
            exports = list(bucket.list_blobs(prefix=self.EXPORT_PREFIX))
        except Exception as e:
            self.stderr.write(self.style.ERROR(f"✗ Connection failed: {e}"))
            return

        self.stdout.write(self.style.SUCCESS(f"✓ Connected to {self.bucket_name} ({bucket.location})"))
        self.stdout.write(f"  {len(exports)} export(s) under {self.EXPORT_PREFIX}")
        if exports:
            newest = max(exports, key=lambda b: b.time_created)
            self.stdout.write(f"  Newest: {newest.name} ({newest.time_created.strftime('%Y-%m-%d %H:%M')})")
