"""Category registry package."""

from ledger.categories.registry import (
    DEFAULT_CATEGORIES,
    CategoryRegistry,
    toggle_manager,
)

__all__ = ["DEFAULT_CATEGORIES", "CategoryRegistry", "toggle_manager"]
