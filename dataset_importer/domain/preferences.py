"""
Display preferences for table rendering, persisted through a pluggable store.
"""
import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

ROW_HEIGHTS = ("compact", "comfortable")


@dataclass(frozen=True)
class DisplayPreferences:
    row_height: str = "compact"
    preview_rows: int = 10

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "DisplayPreferences":
        """Build preferences from stored values, ignoring anything invalid."""
        defaults = cls()
        row_height = raw.get("row_height", defaults.row_height)
        if row_height not in ROW_HEIGHTS:
            row_height = defaults.row_height
        preview_rows = raw.get("preview_rows", defaults.preview_rows)
        if not isinstance(preview_rows, int) or isinstance(preview_rows, bool) or preview_rows < 1:
            preview_rows = defaults.preview_rows
        return cls(row_height=row_height, preview_rows=preview_rows)


class PreferenceStore(Protocol):
    def load(self) -> Dict[str, Any]:
        ...

    def save(self, values: Dict[str, Any]) -> None:
        ...


class InMemoryPreferenceStore:
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self.values: Dict[str, Any] = dict(initial or {})

    def load(self) -> Dict[str, Any]:
        return dict(self.values)

    def save(self, values: Dict[str, Any]) -> None:
        self.values = dict(values)


class JsonFilePreferenceStore:
    """Stores preferences as a small JSON document on disk."""

    def __init__(self, path: str):
        self.path = Path(path).expanduser()

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read preferences from {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def save(self, values: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(values, indent=2), encoding="utf-8")


class PreferencesManager:
    """Owns the current DisplayPreferences and writes changes to its store."""

    def __init__(self, store: PreferenceStore):
        self.store = store
        self.preferences = DisplayPreferences.from_dict(store.load())

    def update(self, **changes: Any) -> DisplayPreferences:
        candidate = DisplayPreferences.from_dict({**asdict(self.preferences), **changes})
        for key, value in changes.items():
            if getattr(candidate, key, None) != value:
                raise ValueError(f"Invalid value for {key}: {value!r}")
        self.preferences = candidate
        self.store.save(asdict(self.preferences))
        return self.preferences
