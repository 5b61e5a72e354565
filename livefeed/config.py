from __future__ import annotations

import getpass
import json
import os
import warnings
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path("~/.config/livefeed/config.json").expanduser()
DEFAULT_DB_PATH = "~/.livefeed/feed.sqlite"

CONFIG_ENV_OVERRIDES = {
    "base_url": "LIVEFEED_BASE_URL",
    "room": "LIVEFEED_ROOM",
    "user": "LIVEFEED_USER",
    "poll_interval_s": "LIVEFEED_POLL_INTERVAL_S",
    "page_size": "LIVEFEED_PAGE_SIZE",
    "history_proximity_px": "LIVEFEED_HISTORY_PROXIMITY_PX",
    "request_timeout_s": "LIVEFEED_REQUEST_TIMEOUT_S",
    "server_host": "LIVEFEED_SERVER_HOST",
    "server_port": "LIVEFEED_SERVER_PORT",
    "db_path": "LIVEFEED_DB",
}

INT_KEYS = {"page_size", "history_proximity_px", "server_port"}
FLOAT_KEYS = {"poll_interval_s", "request_timeout_s"}


def _default_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "anonymous"


def get_config_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("LIVEFEED_CONFIG", DEFAULT_CONFIG_PATH))
    return candidate.expanduser()


def _strip_json_comments(text: str) -> str:
    """Drop ``//`` line comments outside of strings."""
    lines = []
    for line in text.splitlines():
        result = []
        in_string = False
        escape_next = False
        for i, char in enumerate(line):
            if escape_next:
                result.append(char)
                escape_next = False
                continue
            if char == "\\" and in_string:
                result.append(char)
                escape_next = True
                continue
            if char == '"':
                in_string = not in_string
            elif not in_string and char == "/" and line[i + 1 : i + 2] == "/":
                break
            result.append(char)
        lines.append("".join(result))
    return "\n".join(lines)


def _strip_trailing_commas(text: str) -> str:
    result: list[str] = []
    in_string = False
    escape_next = False
    i = 0
    while i < len(text):
        char = text[i]
        if escape_next:
            result.append(char)
            escape_next = False
            i += 1
            continue
        if char == "\\" and in_string:
            result.append(char)
            escape_next = True
            i += 1
            continue
        if char == '"':
            in_string = not in_string
        elif not in_string and char == ",":
            j = i + 1
            while j < len(text) and text[j].isspace():
                j += 1
            if j < len(text) and text[j] in {"]", "}"}:
                i += 1
                continue
        result.append(char)
        i += 1
    return "".join(result)


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    config_path = get_config_path(path)
    if not config_path.exists():
        return {}
    raw = config_path.read_text()
    if not raw.strip():
        return {}
    try:
        data = json.loads(_strip_trailing_commas(_strip_json_comments(raw)))
    except json.JSONDecodeError as exc:
        raise ValueError("invalid config json") from exc
    if not isinstance(data, dict):
        raise ValueError("config must be an object")
    return data


def write_config_file(data: dict[str, Any], path: Path | None = None) -> Path:
    config_path = get_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n")
    return config_path


def get_env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, env_var in CONFIG_ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None:
            overrides[key] = value
    return overrides


@dataclass
class LiveFeedConfig:
    base_url: str = "http://127.0.0.1:8087"
    room: str = "main"
    user: str = field(default_factory=_default_user)
    poll_interval_s: float = 5.0
    page_size: int = 50
    # Distance from the top of the scrolled list that triggers a history fetch.
    history_proximity_px: int = 300
    request_timeout_s: float = 3.0
    server_host: str = "127.0.0.1"
    server_port: int = 8087
    db_path: str = DEFAULT_DB_PATH

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _parse_int(value: object, default: int, *, key: str) -> int:
    if value is None:
        return default
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _parse_float(value: object, default: float, *, key: str) -> float:
    if value is None:
        return default
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid number for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _apply_value(cfg: LiveFeedConfig, key: str, value: object) -> None:
    if key in INT_KEYS:
        setattr(cfg, key, _parse_int(value, getattr(cfg, key), key=key))
    elif key in FLOAT_KEYS:
        setattr(cfg, key, _parse_float(value, getattr(cfg, key), key=key))
    elif value is not None:
        setattr(cfg, key, str(value))


def load_config(path: Path | None = None) -> LiveFeedConfig:
    cfg = LiveFeedConfig()
    try:
        data = read_config_file(path)
    except ValueError:
        data = {}
    for key, value in data.items():
        if hasattr(cfg, key):
            _apply_value(cfg, key, value)
    for key, value in get_env_overrides().items():
        _apply_value(cfg, key, value)
    if cfg.page_size <= 0:
        warnings.warn(f"Invalid page_size: {cfg.page_size}", RuntimeWarning, stacklevel=2)
        cfg.page_size = LiveFeedConfig.page_size
    return cfg
