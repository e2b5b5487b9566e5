"""In-memory directory of account, category and user names."""

import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_SECTIONS = ("accounts", "categories", "users")


class Directory:
    """Read-only id -> display name lookups for accounts, categories and users.

    Loaded from a YAML file shaped like::

        accounts:
          acc-1: Acme Corp
        categories:
          cat-1: Onboarding
        users:
          u-1: Jane Doe
    """

    def __init__(self, names: dict[str, dict[str, str]] | None = None) -> None:
        """Initialize directory, optionally with preloaded sections."""
        self._names: dict[str, dict[str, str]] = {section: {} for section in _SECTIONS}
        self._path: Path | None = None
        if names:
            for section in _SECTIONS:
                self._names[section] = dict(names.get(section, {}))

    def load(self, path: Path) -> None:
        """Load/reload all sections from a YAML file.

        Idempotent - safe to call multiple times. A missing or unreadable
        file leaves an empty directory.

        Args:
            path: Path to the directory YAML file
        """
        self._path = path
        names: dict[str, dict[str, str]] = {section: {} for section in _SECTIONS}

        if not path.exists():
            logger.warning(f"[Directory] File not found: {path}")
            self._names = names
            return

        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"[Directory] Failed to read {path}: {e}")
            self._names = names
            return

        if not isinstance(data, dict):
            logger.warning(f"[Directory] Ignoring {path}: top level is not a mapping")
            self._names = names
            return

        for section in _SECTIONS:
            names[section] = self._parse_section(data.get(section))

        # Atomic replacement (overwrites previous contents)
        self._names = names
        logger.info(f"[Directory] Loaded {self.counts()} from {path}")

    def reload(self) -> None:
        """Reload from the last loaded path, if any."""
        if self._path is not None:
            self.load(self._path)

    def _parse_section(self, raw: Any) -> dict[str, str]:
        if isinstance(raw, dict):
            return {str(k): str(v) for k, v in raw.items() if v is not None}
        # Also accept a list of {id, name} records
        if isinstance(raw, list):
            return {
                str(item["id"]): str(item["name"])
                for item in raw
                if isinstance(item, dict) and "id" in item and "name" in item
            }
        return {}

    def account_name(self, account_id: str) -> str | None:
        return self._names["accounts"].get(account_id)

    def category_name(self, category_id: str) -> str | None:
        return self._names["categories"].get(category_id)

    def user_name(self, user_id: str) -> str | None:
        return self._names["users"].get(user_id)

    def counts(self) -> dict[str, int]:
        """Number of entries per section."""
        return {section: len(entries) for section, entries in self._names.items()}
