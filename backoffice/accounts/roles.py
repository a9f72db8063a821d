from typing import Optional

from django.contrib.auth.models import Group
from django.db import models


class UserRole(models.TextChoices):
    SUPER_ADMIN = "super_admin", "Super admin"
    MANAGER = "manager", "Manager"
    CLIENT = "client", "Client"


def role_of(user) -> Optional[str]:
    """Name of the user's role group, or None when the user has no role."""
    names = [g.name for g in user.groups.all()]
    return names[0] if names else None


def has_role(user, role) -> bool:
    return user.groups.filter(name=role).exists()


def has_exact_role(user, role) -> bool:
    names = list(user.groups.values_list("name", flat=True))
    return names == [role]


def is_super_admin(user) -> bool:
    if not user or not user.is_authenticated:
        return False
    return user.is_superuser or has_role(user, UserRole.SUPER_ADMIN)


def assign_role(user, role) -> Group:
    """Replace every role of ``user`` with ``role``."""
    group, _ = Group.objects.get_or_create(name=role)
    user.groups.set([group])
    return group


def assignable_roles():
    """Role choices offered on the user form: every role except super admin."""
    names = set(Group.objects.exclude(name=UserRole.SUPER_ADMIN).values_list("name", flat=True))
    names.update([UserRole.MANAGER, UserRole.CLIENT])
    labels = dict(UserRole.choices)
    return [(name, labels.get(name, name.replace("_", " ").capitalize())) for name in sorted(names)]
