"""
Management command to seed the system roles.

Creates the built-in roles defined by the permission catalog. This command
is idempotent and safe to re-run.
"""
from django.core.management.base import BaseCommand

from apps.rbac.models import Role
from apps.rbac.services import get_rbac_service


class Command(BaseCommand):
    help = 'Seed system roles from the permission catalog (idempotent)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--show-permissions',
            action='store_true',
            help='Print the permission catalog grouped by category',
        )

    def handle(self, *args, **options):
        service = get_rbac_service()

        self.stdout.write('Seeding system roles...\n')
        created = {role.name for role in service.initialize_system_roles()}

        for definition in service.catalog.system_roles:
            if definition.name in created:
                self.stdout.write(self.style.SUCCESS(f'✓ Created: {definition.name}'))
            else:
                self.stdout.write(self.style.HTTP_INFO(f'  Exists: {definition.name}'))

        self.stdout.write(
            self.style.SUCCESS(
                f'\n✓ Seeding complete: {len(created)} created, '
                f'{len(service.catalog.system_roles) - len(created)} unchanged'
            )
        )

        self.stdout.write('\n' + '=' * 70)
        self.stdout.write('System Roles:')
        self.stdout.write('=' * 70)
        for role in Role.objects.system().order_by('name'):
            self.stdout.write(f'  • {role.name:<20} {len(role.permissions):>3} permissions')

        if options['show_permissions']:
            self.stdout.write('\n' + '=' * 70)
            self.stdout.write('Permissions Summary by Category:')
            self.stdout.write('=' * 70)
            for category, definitions in sorted(service.catalog.by_category().items()):
                self.stdout.write(f'\n{category.upper()}:')
                for definition in definitions:
                    self.stdout.write(f'  • {definition.code:<30} {definition.label}')
            self.stdout.write(f'\nTotal permissions: {len(service.catalog.permissions)}')
