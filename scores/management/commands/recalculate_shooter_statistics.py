"""
Django management command to rebuild shooter statistics from raw entries.

Usage:
    python manage.py recalculate_shooter_statistics
    python manage.py recalculate_shooter_statistics --member 12
    python manage.py recalculate_shooter_statistics --dry-run
"""
import logging

from django.core.management.base import BaseCommand, CommandError

from scores.exceptions import RecalculationError
from scores.models import Member
from scores.services.shooter_statistics import ShooterStatisticsService

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Rebuild shooter statistics by replaying every raw score entry'

    def add_arguments(self, parser):
        parser.add_argument(
            '--member',
            type=int,
            help='Only recalculate this member id',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show the recalculated values without saving them',
        )

    def handle(self, *args, **options):
        member_id = options.get('member')
        dry_run = options.get('dry_run', False)

        members = Member.objects.order_by('id')
        if member_id is not None:
            members = members.filter(id=member_id)
            if not members.exists():
                raise CommandError(f'Member not found: {member_id}')

        service = ShooterStatisticsService()
        failures = 0
        for member in members:
            try:
                states = service.recalculate_member(member.id, dry_run=dry_run)
            except RecalculationError:
                failures += 1
                self.stdout.write(self.style.ERROR(f'{member}: recalculation failed'))
                continue

            for weapon_class, state in states.items():
                self.stdout.write(
                    f'{member} {weapon_class}: {state.completed_matches} matches, '
                    f'{state.total_series_count} series, {state.average_per_series:.2f}p/series'
                )

        prefix = 'Dry run: ' if dry_run else ''
        if failures:
            logger.error(f'Shooter statistic recalculation finished with {failures} failed member(s)')
            raise CommandError(f'{prefix}{failures} member(s) failed')
        self.stdout.write(self.style.SUCCESS(f'{prefix}Shooter statistics recalculated'))
        logger.info(f'Shooter statistics recalculated (dry_run={dry_run})')
