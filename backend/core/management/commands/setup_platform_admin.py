"""
Grant platform admin rights to a user and seed the default SystemConfig rows.

Usage:
    python manage.py setup_platform_admin admin@example.com [--password secret]
"""
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from backend.core.config import seed_default_configs
from backend.core.utils import create_system_log

User = get_user_model()


class Command(BaseCommand):
    help = 'Create or upgrade a platform admin user and seed default system configuration'

    def add_arguments(self, parser):
        parser.add_argument('email', help='Email of the user to make platform admin')
        parser.add_argument('--password', help='Password for a newly created user')

    def handle(self, *args, **options):
        email = options['email'].strip().lower()
        if '@' not in email:
            raise CommandError(f'Not a valid email address: {email}')

        with transaction.atomic():
            user = User.objects.select_for_update().filter(email__iexact=email).first()
            if user is None:
                if not options.get('password'):
                    raise CommandError('User does not exist; pass --password to create it')
                user = User.objects.create_user(
                    username=email, email=email, password=options['password'],
                    first_name='Platform', last_name='Administrator',
                    platform_admin=True, custom_margin_enabled=True,
                )
                self.stdout.write(self.style.SUCCESS(f'Created platform admin: {email}'))
            elif not user.platform_admin:
                history = list(user.margin_override_history or [])
                history.append({
                    'changed_by': 'system',
                    'changed_at': timezone.now().isoformat(),
                    'previous': user.custom_margin_enabled,
                    'new': True,
                    'reason': 'Platform admin setup',
                })
                user.platform_admin = True
                user.custom_margin_enabled = True
                user.margin_override_history = history
                user.save(update_fields=['platform_admin', 'custom_margin_enabled', 'margin_override_history',
                                         'updated_at'])
                self.stdout.write(self.style.SUCCESS(f'Upgraded {email} to platform admin'))
            else:
                self.stdout.write(f'  {email} is already a platform admin')

            created_keys = seed_default_configs(user=user)

        for key in created_keys:
            self.stdout.write(self.style.SUCCESS(f'  Seeded config: {key}'))
        if not created_keys:
            self.stdout.write('  System configuration already present')

        create_system_log(
            user=user, action_type='margin_permission_change', module='admin',
            target_id=user.id, target_name=email,
            details={'reason': 'Platform admin setup', 'seeded_configs': created_keys},
        )
        self.stdout.write(self.style.SUCCESS(f'\nPlatform admin setup completed for {email}'))
