"""
Management command to print effective permissions.

Usage:
    python manage.py resolve_permissions --user <uuid> [--tenant <uuid>]
    python manage.py resolve_permissions --role <name> [--tenant <uuid>]
"""
from django.core.management.base import BaseCommand, CommandError

from apps.rbac.exceptions import RBACError
from apps.rbac.models import Role
from apps.rbac.services import _parse_uuid, get_rbac_service


class Command(BaseCommand):
    help = 'Print the effective permissions of a user or a role'

    def add_arguments(self, parser):
        target = parser.add_mutually_exclusive_group(required=True)
        target.add_argument('--user', help='User UUID')
        target.add_argument('--role', help='Role name')
        parser.add_argument('--tenant', help='Tenant UUID (defaults to global scope)')

    def handle(self, *args, **options):
        tenant_id = None
        if options.get('tenant'):
            tenant_id = _parse_uuid(options['tenant'])
            if tenant_id is None:
                raise CommandError(f"Invalid tenant id: {options['tenant']}")

        service = get_rbac_service()

        if options.get('user'):
            user_id = _parse_uuid(options['user'])
            if user_id is None:
                raise CommandError(f"Invalid user id: {options['user']}")
            try:
                roles = service.get_user_roles(user_id, tenant_id)
                permissions = service.get_user_permissions(user_id, tenant_id)
            except RBACError as e:
                raise CommandError(e.detail)
            self.stdout.write(f"User {user_id} roles: {', '.join(r.name for r in roles) or '(none)'}")
        else:
            role = Role.objects.resolve_by_name(options['role'], tenant_id)
            if role is None:
                raise CommandError(f"Role not found: {options['role']}")
            permissions = service.resolve_role_permissions(role)
            self.stdout.write(f"Role {role.name} inherits: {', '.join(role.inherited_roles) or '(none)'}")

        self.stdout.write(f'\nEffective permissions ({len(permissions)}):')
        for code in sorted(permissions):
            self.stdout.write(f'  • {code}')
