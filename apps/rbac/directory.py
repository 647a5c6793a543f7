"""
User directory seam.

User records are owned by the identity service. The RBAC service only
needs to know whether a user id exists before assigning a role to it.
"""
from django.conf import settings
from django.utils.module_loading import import_string


class UserDirectory:
    """Answers existence queries about users."""

    def user_exists(self, user_id) -> bool:
        raise NotImplementedError


class AllowAllUserDirectory(UserDirectory):
    """Treats every user id as existing. Used when no directory is wired in."""

    def user_exists(self, user_id) -> bool:
        return True


def get_user_directory() -> UserDirectory:
    """Instantiate the directory class named by ``RBAC_USER_DIRECTORY``."""
    path = getattr(settings, 'RBAC_USER_DIRECTORY', None)
    if not path:
        return AllowAllUserDirectory()
    return import_string(path)()
