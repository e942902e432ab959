"""
Management command to create an admin-role user
Usage: python manage.py create_admin_user --username admin --email admin@example.com --password secret
"""
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand


class Command(BaseCommand):
    help = 'Create an active admin user, or promote an existing one'

    def add_arguments(self, parser):
        parser.add_argument('--username', required=True)
        parser.add_argument('--email', required=True)
        parser.add_argument('--password', help='Only used when the user is created')
        parser.add_argument('--name', default='', help='Display name')

    def handle(self, *args, **options):
        User = get_user_model()
        user, created = User.objects.get_or_create(
            username=options['username'],
            defaults={'email': options['email'], 'name': options['name']},
        )
        if created:
            if options.get('password'):
                user.set_password(options['password'])
            else:
                user.set_unusable_password()
                self.stdout.write(self.style.WARNING('No password given; set one with changepassword'))

        user.role = 'admin'
        user.status = 'active'
        user.is_active = True
        user.is_staff = True
        user.save()

        if created:
            self.stdout.write(self.style.SUCCESS(f'✓ Created admin user: {user.username}'))
        else:
            self.stdout.write(f'  User already exists, ensured admin role: {user.username}')
