# Default roles (groups) and the Django permissions they imply.
# Pattern supports wildcards * per action prefix.
from .roles import UserRole

ROLE_DEFS = {
    UserRole.SUPER_ADMIN: {
        "permissions": ["add_*", "change_*", "delete_*", "view_*", "page_*", "widget_*"],
    },
    UserRole.MANAGER: {
        "permissions": [
            "view_*",
            "add_pack", "change_pack", "delete_pack",
            "add_question", "change_question", "delete_question",
            "add_questionanswer", "change_questionanswer", "delete_questionanswer",
            "add_difficulty", "change_difficulty",
            "add_category", "change_category",
            "page_profile",
            "widget_*",
        ],
    },
    UserRole.CLIENT: {
        "permissions": [],
    },
}


def expand_patterns(patterns, permissions):
    """Map each pattern to the permissions it selects; ``add_*`` matches every ``add_`` codename."""
    expanded = {}
    for pattern in patterns:
        if pattern.endswith("*"):
            prefix = pattern[:-1]
            expanded[pattern] = [p for p in permissions if p.codename.startswith(prefix)]
        else:
            expanded[pattern] = [p for p in permissions if p.codename == pattern]
    return expanded
