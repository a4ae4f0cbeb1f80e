"""Category-group registry package."""

from finance_manager.groups.registry import (
    DEFAULT_GROUPS,
    CategoryGroupRegistry,
    UnknownGroupError,
    get_default_registry,
)

__all__ = [
    "DEFAULT_GROUPS",
    "CategoryGroupRegistry",
    "UnknownGroupError",
    "get_default_registry",
]
