"""Persistent JSON config and prompt history.

A missing file means defaults.  A malformed file, or a value of the wrong
type, is logged and replaced by its default so the pager always starts.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from platformdirs import user_config_dir, user_data_dir

from jpager.search import SearchScope

logger = logging.getLogger(__name__)

APP_NAME = "jpager"
CONFIG_FILENAME = "config.json"
HISTORY_FILENAME = "history.json"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
DEFAULT_HISTORY_PATH = Path(user_data_dir(APP_NAME, appauthor=False)) / HISTORY_FILENAME


@dataclass
class PagerConfig:
    scrolloff: int = 3
    indent: int = 2
    data_mode: bool = True
    collapse_depth: int | None = None
    search_scope: SearchScope = SearchScope.ALL
    history_size: int = 50
    source: Path | None = field(default=None, compare=False)

    def with_overrides(self, **overrides) -> PagerConfig:
        """Copy with every non-None override applied (CLI flags)."""
        return dataclasses.replace(
            self, **{k: v for k, v in overrides.items() if v is not None}
        )


def _read_json_object(path: Path) -> dict:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as e:
        logger.warning("ignoring unreadable %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("ignoring %s: top level is not an object", path)
        return {}
    return data


def _count(value: object) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return None


def load_config(path: str | Path | None = None) -> PagerConfig:
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    data = _read_json_object(config_path)
    config = PagerConfig(source=config_path if data else None)

    for name in ("scrolloff", "indent", "history_size"):
        if name in data:
            value = _count(data[name])
            if value is None:
                logger.warning("config %s: %r is not a non-negative integer", name, data[name])
            else:
                setattr(config, name, value)

    if "data_mode" in data:
        if isinstance(data["data_mode"], bool):
            config.data_mode = data["data_mode"]
        else:
            logger.warning("config data_mode: %r is not a boolean", data["data_mode"])

    if "collapse_depth" in data:
        raw = data["collapse_depth"]
        value = _count(raw)
        if raw is None or value is not None:
            config.collapse_depth = value
        else:
            logger.warning("config collapse_depth: %r is not a non-negative integer", raw)

    if "search_scope" in data:
        try:
            config.search_scope = SearchScope(data["search_scope"])
        except ValueError:
            logger.warning("config search_scope: unknown scope %r", data["search_scope"])

    return config


# -- Prompt history ----------------------------------------------------------


def load_history(path: str | Path | None = None) -> dict[str, list[str]]:
    """Search and command history saved by a previous session."""
    data = _read_json_object(Path(path) if path is not None else DEFAULT_HISTORY_PATH)
    history: dict[str, list[str]] = {}
    for name in ("search", "command"):
        entries = data.get(name)
        if isinstance(entries, list):
            history[name] = [e for e in entries if isinstance(e, str)]
    return history


def save_history(history: dict[str, list[str]], path: str | Path | None = None) -> bool:
    history_path = Path(path) if path is not None else DEFAULT_HISTORY_PATH
    try:
        history_path.parent.mkdir(parents=True, exist_ok=True)
        history_path.write_text(
            json.dumps(history, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
        )
    except OSError as e:
        logger.warning("could not save history to %s: %s", history_path, e)
        return False
    return True
