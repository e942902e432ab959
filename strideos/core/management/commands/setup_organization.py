"""
Management command to create or update the organization settings row
Usage: python manage.py setup_organization --name "Acme Agency" [--workstream-capacity 32] [--sprint-duration 2]
"""
from django.core.management.base import BaseCommand, CommandError
from django.utils.text import slugify

from strideos.core.models import Organization


class Command(BaseCommand):
    help = 'Create or update the singleton organization with its sprint defaults'

    def add_arguments(self, parser):
        parser.add_argument('--name', required=True, help='Organization name')
        parser.add_argument('--slug', help='URL slug (defaults to the slugified name)')
        parser.add_argument('--workstream-capacity', type=int, help='Default hours per workstream per sprint')
        parser.add_argument('--sprint-duration', type=int, help='Default sprint length in weeks (1-4)')
        parser.add_argument('--timezone', help='Organization timezone, e.g. Europe/London')

    def handle(self, *args, **options):
        capacity = options.get('workstream_capacity')
        duration = options.get('sprint_duration')
        if capacity is not None and capacity <= 0:
            raise CommandError('Workstream capacity must be greater than 0')
        if duration is not None and not 1 <= duration <= 4:
            raise CommandError('Sprint duration must be between 1 and 4 weeks')

        org = Organization.get_solo()
        created = org is None
        if created:
            org = Organization()

        org.name = options['name']
        org.slug = options.get('slug') or slugify(options['name'])
        if capacity is not None:
            org.default_workstream_capacity = capacity
        if duration is not None:
            org.default_sprint_duration = duration
        if options.get('timezone'):
            org.timezone = options['timezone']
        org.save()

        verb = 'Created' if created else 'Updated'
        self.stdout.write(self.style.SUCCESS(
            f'{verb} organization "{org.name}" '
            f'({org.default_workstream_capacity}h per workstream, {org.default_sprint_duration}-week sprints)'
        ))
