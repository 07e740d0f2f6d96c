"""
Category Registry

User-defined category labels, kept in insertion order.

The store does not constrain categories (the Supabase CHECK constraint
was dropped so users can add their own); the registry is the only place
the list of valid labels lives. It must never become empty, otherwise
the entry form has nothing to select.
"""

from typing import Iterable, Optional

from ledger.models.transaction import DEFAULT_CATEGORIES, CategoryManagerView
from ledger.validation.validator import ValidationError


MIN_CATEGORIES_MESSAGE = "At least one category is required."


class CategoryRegistry:
    """Ordered set of unique category labels."""

    def __init__(self, categories: Optional[Iterable[str]] = None):
        self._categories: list[str] = []
        for name in categories if categories is not None else DEFAULT_CATEGORIES:
            self.add(name)
        if not self._categories:
            raise ValidationError("categories", MIN_CATEGORIES_MESSAGE)

    @property
    def categories(self) -> list[str]:
        return list(self._categories)

    def __contains__(self, name: object) -> bool:
        return name in self._categories

    def __iter__(self):
        return iter(list(self._categories))

    def __len__(self) -> int:
        return len(self._categories)

    @property
    def first(self) -> str:
        return self._categories[0]

    def add(self, name: str) -> bool:
        """
        Append a label.

        Blank labels and exact (case-sensitive) duplicates are ignored.
        Returns True when the registry changed.
        """
        label = (name or "").strip()
        if not label or label in self._categories:
            return False
        self._categories.append(label)
        return True

    def remove(self, name: str, selected: Optional[str] = None) -> Optional[str]:
        """
        Remove a label and return the category the form should select next.

        Raises ValidationError without touching the registry when only one
        category is left. If the removed label was selected, the first
        remaining label becomes the selection.
        """
        if len(self._categories) <= 1:
            raise ValidationError("categories", MIN_CATEGORIES_MESSAGE)

        if name not in self._categories:
            return selected

        self._categories.remove(name)
        if selected == name:
            return self._categories[0]
        return selected


def toggle_manager(view: CategoryManagerView) -> CategoryManagerView:
    """Show/hide the category manager panel."""
    if view == CategoryManagerView.EXPANDED:
        return CategoryManagerView.COLLAPSED
    return CategoryManagerView.EXPANDED
