"""Preferences package."""

from ledger.preferences.store import AppState, PreferenceStore

__all__ = ["AppState", "PreferenceStore"]
