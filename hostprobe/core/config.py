"""Configuration loading with layered overrides."""

from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

if TYPE_CHECKING:
    from hostprobe.core.context import Context


ENV_PREFIX = "HOSTPROBE_"

DEFAULTS = {
    "state_dir": "/var/tmp/hostprobe",
    "log_dir": str(Path("~") / "var" / "log" / "hostprobe"),
}


def load_config_file(path: Path) -> dict[str, Any]:
    """Load a YAML config file if it exists."""
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError):
        return {}
    return data if isinstance(data, dict) else {}


def get_config_value(key: str, context: "Context | None" = None) -> str | None:
    """Get config value with env -> project -> user -> default precedence."""
    if context is None:
        from hostprobe.core.context import Context
        context = Context()

    # Environment
    value = context.get_env(ENV_PREFIX + key.upper())
    if value is not None:
        return value

    # Project config
    data = load_config_file(Path(".hostprobe.yaml"))
    if key in data:
        return str(data[key])

    # User config
    data = load_config_file(Path.home() / ".config" / "hostprobe" / "config.yaml")
    if key in data:
        return str(data[key])

    return DEFAULTS.get(key)


def get_state_dir(context: "Context | None" = None) -> Path:
    """Directory holding persisted probe state."""
    return Path(get_config_value("state_dir", context)).expanduser()


def get_log_dir(context: "Context | None" = None) -> Path | None:
    """Directory holding JSONL run logs, or None when logging is off."""
    value = get_config_value("log_dir", context)
    if not value or value.lower() in ("off", "false", "no"):
        return None
    return Path(value).expanduser()
