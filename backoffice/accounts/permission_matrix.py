"""
Role permission matrix.

The matrix state is a flat mapping of checkbox keys to booleans:

* ``select_all``;
* one toggle per admin resource, keyed ``"<app_label>.<model_name>"``;
* one checkbox per resource action, keyed like the permission string
  Django checks (``"quiz.view_pack"``);
* one checkbox per page, widget and custom permission
  (``"accounts.page_profile"``).

``PermissionMatrix`` applies a single toggle event to that state and keeps
the aggregate toggles consistent with the individual checkboxes.
"""
from dataclasses import dataclass
from typing import Iterable, Optional

from django.contrib.auth.models import Permission
from django.db.models import Q
from django.utils.text import capfirst

RESOURCE_ACTIONS = ("view", "add", "change", "delete")
PAGE_PREFIX = "page_"
WIDGET_PREFIX = "widget_"
SELECT_ALL = "select_all"


@dataclass(frozen=True)
class Entity:
    key: str
    label: str


@dataclass(frozen=True)
class ResourceEntity:
    key: str
    label: str
    # Permission keys, in RESOURCE_ACTIONS order
    permissions: tuple

    def action_key(self, action: str) -> str:
        return self.permissions[RESOURCE_ACTIONS.index(action)]


@dataclass(frozen=True)
class MatrixLayout:
    resources: tuple = ()
    pages: tuple = ()
    widgets: tuple = ()
    custom: tuple = ()

    @property
    def standalone(self) -> tuple:
        return self.pages + self.widgets + self.custom

    def resource(self, key: str) -> Optional[ResourceEntity]:
        for resource in self.resources:
            if resource.key == key:
                return resource
        return None

    def resource_of(self, permission_key: str) -> Optional[ResourceEntity]:
        for resource in self.resources:
            if permission_key in resource.permissions:
                return resource
        return None

    def permission_keys(self) -> list:
        keys = [key for resource in self.resources for key in resource.permissions]
        return keys + [entity.key for entity in self.standalone]

    def keys(self) -> list:
        return [SELECT_ALL] + [r.key for r in self.resources] + self.permission_keys()


class PermissionMatrix:
    def __init__(self, layout: MatrixLayout, state=None):
        self.layout = layout
        self.state = {key: False for key in layout.keys()}
        for key, value in (state or {}).items():
            if key in self.state:
                self.state[key] = bool(value)

    def apply(self, key: str, value: bool) -> dict:
        """Apply one checkbox change and return the synchronised state."""
        value = bool(value)
        if key == SELECT_ALL:
            self.toggle_select_all(value)
        elif self.layout.resource(key) is not None:
            self.toggle_resource(key, value)
        elif key in self.state:
            self.toggle_permission(key, value)
        else:
            raise KeyError(key)
        return self.state

    def toggle_select_all(self, value: bool):
        for key in self.state:
            self.state[key] = value

    def toggle_resource(self, resource_key: str, value: bool):
        resource = self.layout.resource(resource_key)
        self.state[resource.key] = value
        for key in resource.permissions:
            self.state[key] = value
        if not value:
            self.state[SELECT_ALL] = False
        self.refresh_select_all()

    def toggle_permission(self, key: str, value: bool):
        self.state[key] = value
        resource = self.layout.resource_of(key)
        if resource is not None:
            self.refresh_resource(resource)
        if not value:
            self.state[SELECT_ALL] = False
        self.refresh_select_all()

    def refresh_resource(self, resource: ResourceEntity):
        self.state[resource.key] = all(self.state[key] for key in resource.permissions)

    def refresh_select_all(self):
        entity_keys = [r.key for r in self.layout.resources]
        entity_keys += [entity.key for entity in self.layout.standalone]
        self.state[SELECT_ALL] = all(self.state[key] for key in entity_keys)

    def hydrate(self, granted: Iterable[str]):
        """Load a saved role: check its permissions, then derive every toggle."""
        granted = set(granted)
        for key in self.layout.permission_keys():
            self.state[key] = key in granted
        for resource in self.layout.resources:
            self.refresh_resource(resource)
        self.refresh_select_all()
        return self.state

    def resolve(self, changed: Iterable[str]):
        """Expand aggregate toggles switched on in a plain form post.

        ``changed`` holds the aggregate keys whose posted value differs from
        the rendered one. A toggle switched on grants everything below it; a
        toggle left as rendered, or switched off, leaves the individual boxes
        as posted.
        """
        changed = set(changed)
        if SELECT_ALL in changed and self.state[SELECT_ALL]:
            self.toggle_select_all(True)
            return self.state
        for resource in self.layout.resources:
            if resource.key in changed and self.state[resource.key]:
                for key in resource.permissions:
                    self.state[key] = True
            self.refresh_resource(resource)
        self.refresh_select_all()
        return self.state

    def granted(self) -> set:
        """Permission keys to persist: only the checked ones."""
        return {key for key in self.layout.permission_keys() if self.state[key]}


def _permission_key(permission: Permission) -> str:
    return f"{permission.content_type.app_label}.{permission.codename}"


def build_layout(admin_site) -> MatrixLayout:
    """Derive the matrix entities from the admin registry and the permission table."""
    resources = []
    for model in admin_site._registry:
        opts = model._meta
        resources.append(
            ResourceEntity(
                key=f"{opts.app_label}.{opts.model_name}",
                label=f"{capfirst(opts.app_config.verbose_name)} | {capfirst(opts.verbose_name_plural)}",
                permissions=tuple(
                    f"{opts.app_label}.{action}_{opts.model_name}" for action in RESOURCE_ACTIONS
                ),
            )
        )
    resources.sort(key=lambda r: r.key)

    default_actions = Q()
    for action in RESOURCE_ACTIONS:
        default_actions |= Q(codename__startswith=f"{action}_")

    pages, widgets, custom = [], [], []
    extra = Permission.objects.select_related("content_type").exclude(default_actions)
    for permission in extra.order_by("codename"):
        entity = Entity(key=_permission_key(permission), label=permission.name)
        if permission.codename.startswith(PAGE_PREFIX):
            pages.append(entity)
        elif permission.codename.startswith(WIDGET_PREFIX):
            widgets.append(entity)
        else:
            custom.append(entity)

    return MatrixLayout(
        resources=tuple(resources),
        pages=tuple(pages),
        widgets=tuple(widgets),
        custom=tuple(custom),
    )


def permission_keys_of(group) -> set:
    return {_permission_key(p) for p in group.permissions.select_related("content_type")}


def permissions_for(keys: Iterable[str]):
    """``Permission`` rows matching ``"app_label.codename"`` keys."""
    query = Q()
    matched = False
    for key in keys:
        app_label, _, codename = key.partition(".")
        query |= Q(content_type__app_label=app_label, codename=codename)
        matched = True
    if not matched:
        return Permission.objects.none()
    return Permission.objects.filter(query)
