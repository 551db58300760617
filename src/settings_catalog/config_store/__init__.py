"""State store package for last-declared setting lists.

This package provides:
- StateStore: Main class for reading/writing last-declared state
- StoredSettings: A stored setting list with metadata

Directory structure managed:
    ~/.settings-catalog/
    └── state/
        ├── declared/         # Last-declared settings per policy
        └── drift_reports/    # Latest drift report per policy
"""

from .store import (
    StateStore,
    StoredSettings,
    DEFAULT_STATE_DIR,
)

__all__ = [
    "StateStore",
    "StoredSettings",
    "DEFAULT_STATE_DIR",
]
