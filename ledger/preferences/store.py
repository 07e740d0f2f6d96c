"""
Display Preferences

Currency and category choices survive across sessions on the same device.
They live in a small JSON file with two fixed keys:

    {"currency": "KRW", "categories": ["Food", "Transport", ...]}

DESIGN DECISION: Preferences are held by an explicit AppState object that
loads on construction and saves on every change. Nothing reads or writes
preference values through module-level globals.
"""

import json
import os
from pathlib import Path
from typing import Optional

import structlog

from ledger.categories.registry import (
    MIN_CATEGORIES_MESSAGE,
    CategoryRegistry,
    toggle_manager,
)
from ledger.models.transaction import (
    CategoryManagerView,
    Currency,
    Preferences,
)
from ledger.validation import ValidationError

logger = structlog.get_logger(__name__)

CURRENCY_KEY = "currency"
CATEGORIES_KEY = "categories"


class PreferenceStore:
    """Reads and writes the preferences file."""

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Preferences:
        """
        Load saved preferences.

        Each key is validated on its own: an unknown currency or an empty /
        non-list category payload falls back to the default for that key only.
        """
        preferences = Preferences()
        if not self._path.exists():
            return preferences

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("preferences_unreadable", path=str(self._path), error=str(e))
            return preferences
        if not isinstance(raw, dict):
            logger.warning("preferences_unreadable", path=str(self._path), error="not an object")
            return preferences

        currency = raw.get(CURRENCY_KEY)
        if currency in (Currency.KRW.value, Currency.USD.value):
            preferences.currency = Currency(currency)

        categories = raw.get(CATEGORIES_KEY)
        if isinstance(categories, list):
            labels = [c for c in categories if isinstance(c, str) and c.strip()]
            if labels:
                preferences.categories = CategoryRegistry(labels).categories

        return preferences

    def save(self, preferences: Preferences) -> None:
        """Atomic write via a .tmp file and os.replace()."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            CURRENCY_KEY: preferences.currency.value,
            CATEGORIES_KEY: preferences.categories,
        }
        tmp = self._path.with_suffix(".tmp")
        try:
            tmp.write_text(
                json.dumps(payload, ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
            os.replace(tmp, self._path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise


class AppState:
    """
    Session-level UI state with persisted preferences.

    Holds the display currency, the category registry, the category
    currently selected in the entry form and the category manager
    visibility. Currency and category changes are saved immediately.
    """

    def __init__(self, store: Optional[PreferenceStore] = None):
        self._store = store
        preferences = store.load() if store else Preferences()

        self._currency = preferences.currency
        self._registry = CategoryRegistry(preferences.categories)
        self.selected_category: str = self._registry.first
        self.manager_view = CategoryManagerView.COLLAPSED
        self.pending_removal: Optional[str] = None

    @property
    def currency(self) -> Currency:
        return self._currency

    @property
    def categories(self) -> list[str]:
        return self._registry.categories

    @property
    def registry(self) -> CategoryRegistry:
        return self._registry

    def preferences(self) -> Preferences:
        return Preferences(currency=self._currency, categories=self._registry.categories)

    def _save(self) -> None:
        if self._store is None:
            return
        try:
            self._store.save(self.preferences())
        except OSError as e:
            # The in-memory state is still valid; only persistence failed
            logger.error("preferences_save_failed", path=str(self._store.path), error=str(e))

    def set_currency(self, currency: Currency) -> None:
        currency = Currency(currency)
        if currency != self._currency:
            self._currency = currency
            self._save()

    def add_category(self, name: str) -> bool:
        changed = self._registry.add(name)
        if changed:
            self._save()
        return changed

    def remove_category(self, name: str) -> None:
        """
        Remove a category; keeps the form selection valid.

        Raises:
            ValidationError: When it is the last remaining category
        """
        self.selected_category = self._registry.remove(name, self.selected_category)
        self._save()

    def request_category_removal(self, name: str) -> None:
        """
        First click of a two-step removal; nothing changes until confirmed.

        Raises:
            ValidationError: When it is the last remaining category
        """
        if len(self._registry) <= 1:
            raise ValidationError("categories", MIN_CATEGORIES_MESSAGE)
        self.pending_removal = name

    def cancel_category_removal(self) -> None:
        self.pending_removal = None

    def confirm_category_removal(self) -> Optional[str]:
        """Second click: remove the pending category and return its name."""
        name, self.pending_removal = self.pending_removal, None
        if name is None or name not in self._registry:
            return None
        self.remove_category(name)
        return name

    def reset_form_category(self) -> None:
        """After a successful submission the form returns to the first category."""
        self.selected_category = self._registry.first

    def toggle_category_manager(self) -> CategoryManagerView:
        self.manager_view = toggle_manager(self.manager_view)
        return self.manager_view
