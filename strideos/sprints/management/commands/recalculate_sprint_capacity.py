"""
Management command to recompute sprint capacity from department workstreams
Usage: python manage.py recalculate_sprint_capacity [--department ID] [--dry-run]
"""
from django.core.management.base import BaseCommand
from django.db import transaction

from strideos.core.cache_utils import invalidate_dashboard_cache
from strideos.sprints.capacity import calculate_capacity
from strideos.sprints.models import Sprint


class Command(BaseCommand):
    help = 'Recalculate total_capacity of planning sprints'

    def add_arguments(self, parser):
        parser.add_argument(
            '--department',
            type=int,
            help='Only recalculate sprints of this department',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show the changes without saving them',
        )

    def handle(self, *args, **options):
        sprints = Sprint.objects.filter(status='planning').select_related('department')
        if options['department']:
            sprints = sprints.filter(department_id=options['department'])

        updated = 0
        with transaction.atomic():
            for sprint in sprints:
                capacity = calculate_capacity(sprint.department)
                if capacity == sprint.total_capacity:
                    continue
                self.stdout.write(f'  {sprint}: {sprint.total_capacity}h -> {capacity}h')
                if not options['dry_run']:
                    sprint.total_capacity = capacity
                    sprint.save(update_fields=['total_capacity', 'updated_at'])
                updated += 1

        if options['dry_run']:
            self.stdout.write(self.style.WARNING(f'Dry run: {updated} sprints would be updated'))
            return
        if updated:
            invalidate_dashboard_cache()
        self.stdout.write(self.style.SUCCESS(f'Updated capacity of {updated} sprints'))
