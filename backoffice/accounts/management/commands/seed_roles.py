from collections import Counter

from django.contrib.auth.models import Group, Permission
from django.core.management.base import BaseCommand

from accounts.rolemap import ROLE_DEFS, expand_patterns


class Command(BaseCommand):
    help = "Create the super_admin, manager and client roles and grant their default permissions"

    def handle(self, *args, **options):
        verbose = options["verbosity"] > 1
        permissions = list(Permission.objects.select_related("content_type").order_by("content_type__app_label", "codename"))

        for role, cfg in ROLE_DEFS.items():
            group, created = Group.objects.get_or_create(name=role)
            expanded = expand_patterns(cfg["permissions"], permissions)
            granted = {perm for matched in expanded.values() for perm in matched}
            group.permissions.set(granted)

            for pattern, matched in expanded.items():
                if not matched:
                    self.stdout.write(self.style.WARNING(f"  {role}: '{pattern}' matches no permission"))
                elif verbose:
                    keys = ", ".join(f"{p.content_type.app_label}.{p.codename}" for p in matched)
                    self.stdout.write(f"  {role}: '{pattern}' -> {keys}")

            per_app = Counter(perm.content_type.app_label for perm in granted)
            summary = ", ".join(f"{app} {count}" for app, count in sorted(per_app.items())) or "nothing"
            action = "created" if created else "updated"
            self.stdout.write(self.style.SUCCESS(f"Role '{role}' {action}: {len(granted)} permissions ({summary})"))

        self.stdout.write(self.style.SUCCESS("Roles seeding complete."))
