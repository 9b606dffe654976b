# core/management/commands/rollover_week.py
from datetime import datetime
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from goals.board import SalesBoard
import logging

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Run the Sunday auto-rollover check (schedule daily), or close the current week with --now'

    def add_arguments(self, parser):
        parser.add_argument(
            '--now',
            action='store_true',
            help='Manual rollover of the current week, regardless of the day',
        )
        parser.add_argument(
            '--yes',
            action='store_true',
            help='Skip the confirmation prompt for --now',
        )
        parser.add_argument(
            '--date',
            type=str,
            help='Treat this date (YYYY-MM-DD) as today',
        )

    def handle(self, *args, **options):
        if options.get('date'):
            try:
                today = datetime.strptime(options['date'], '%Y-%m-%d').date()
            except ValueError:
                raise CommandError(f"Invalid --date {options['date']!r}, expected YYYY-MM-DD")
        else:
            today = timezone.localdate()

        board = SalesBoard()
        self.stdout.write(f"Week rollover check for {today.strftime('%Y-%m-%d')} ({today.strftime('%A')})...\n")

        if options['now']:
            confirmed = options['yes'] or self.confirm(board)
            if not confirmed:
                self.stdout.write(self.style.WARNING("⚠  Rollover cancelled"))
                return
            result = board.trigger_manual_rollover(True, today=today)
        else:
            result = board.run_auto_rollover(today=today)
            if result is None:
                self.stdout.write("  Not a rollover day, or already rolled over today - nothing to do")
                return

        self.print_summary(result)
        if not result['success']:
            raise CommandError(result['error_message'])

    def confirm(self, board):
        live_count = len(board.store.list_live())
        answer = input(f"Archive {live_count} live project(s) into this week's record? [y/N] ")
        return answer.strip().lower() in ('y', 'yes')

    def print_summary(self, result):
        self.stdout.write("\n" + "="*60)
        self.stdout.write("Rollover Summary:")

        if not result['success']:
            self.stdout.write(self.style.ERROR(f"  ✗ Failed: {result['error_message']}"))
        elif result.get('skipped'):
            self.stdout.write(self.style.WARNING("  ⚠  No projects from last week, marked as done for today"))
        else:
            record = result['record']
            self.stdout.write(self.style.SUCCESS(
                f"  ✓ Week Logged: {record['week_display']} - {record['completed']}/{record['target']}"
            ))
            self.stdout.write(
                f"  Top Salesperson: {record['top_salesperson_name']} ({record['top_salesperson_projects']})"
            )
            self.stdout.write(self.style.SUCCESS(f"  ✓ Projects Archived: {result['archived_count']}"))
            if result.get('monthly_champion'):
                champion = result['monthly_champion']
                self.stdout.write(self.style.SUCCESS(
                    f"  ✓ Monthly Champion ({champion['month']}): {champion['salesperson_name']}"
                ))

        for warning in result.get('warnings', []):
            self.stdout.write(self.style.WARNING(f"  ⚠  {warning}"))
        self.stdout.write("="*60)
