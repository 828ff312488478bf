import logging
from pathlib import Path

import yaml

AGENDA_DIR = Path.home() / ".agenda"
DB_PATH = AGENDA_DIR / "agenda.db"
CONFIG_PATH = AGENDA_DIR / "config.yaml"
LOG_PATH = AGENDA_DIR / "agenda.log"
BACKUP_DIR = AGENDA_DIR / "backups"

DEFAULT_GROUP_ID = "default"
COMPLETED_GROUP_ID = "completed"
PROTECTED_GROUP_IDS = frozenset({DEFAULT_GROUP_ID, COMPLETED_GROUP_ID})
DEFAULT_GROUP_COLOR = "#6366f1"


class Config:
    """Single-instance config manager. Load once, cache in memory."""

    _instance: "Config | None" = None
    _data: dict[str, object]

    def __new__(cls) -> "Config":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._data = {}
            cls._instance._load()
        return cls._instance

    def _load(self) -> None:
        if not CONFIG_PATH.exists():
            self._data = {}
            return
        try:
            with CONFIG_PATH.open() as f:
                loaded = yaml.safe_load(f)
        except (OSError, yaml.YAMLError):
            logging.getLogger(__name__).warning("unreadable config at %s; using defaults", CONFIG_PATH)
            loaded = None
        self._data = loaded if isinstance(loaded, dict) else {}

    def _save(self) -> None:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        with CONFIG_PATH.open("w") as f:
            yaml.dump(self._data, f, default_flow_style=False, allow_unicode=True)

    def reload(self) -> None:
        self._load()

    def get(self, key: str, default: object = None) -> object:
        return self._data.get(key, default)

    def set(self, key: str, value: object) -> None:
        self._data[key] = value
        self._save()


_config = Config()


def get_log_level() -> int:
    """Console log level name from config (e.g. 'info'); WARNING when unset or unknown."""
    val = _config.get("log_level")
    level = logging.getLevelName(str(val).upper()) if val else logging.WARNING
    return level if isinstance(level, int) else logging.WARNING


def holidays_enabled() -> bool:
    return _config.get("holidays_enabled", True) is not False


def get_custom_holidays() -> list[dict[str, str]]:
    val = _config.get("holidays")
    return [h for h in val if isinstance(h, dict)] if isinstance(val, list) else []


def add_custom_holiday(name: str, day_month: str) -> None:
    """Add a yearly holiday (DD-MM) to config."""
    entries = get_custom_holidays()
    entries.append({"name": name, "date": day_month})
    _config.set("holidays", entries)


def remove_custom_holiday(name: str) -> bool:
    entries = get_custom_holidays()
    kept = [h for h in entries if h.get("name") != name]
    if len(kept) == len(entries):
        return False
    _config.set("holidays", kept)
    return True


def get_default_group() -> str | None:
    """Group assigned to new tasks when none is given. None = ungrouped."""
    val = _config.get("default_group")
    return str(val).strip() if val else None
