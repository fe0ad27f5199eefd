"""
Settings for psshell: built-in defaults overlaid by an optional config file.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from core.config_loader import load_config_file, merge_mappings, normalize_string_list

CONFIG_ENV_VAR = "PSSHELL_CONFIG"
CONFIG_SECTION = "psshell"

LOG_LEVELS = ("none", "error", "info", "debug")


@dataclass(frozen=True)
class Settings:
    prompt: str = "PSShell> "
    exit_prompt: str = "Press any key to exit."
    executables: List[str] = field(default_factory=lambda: ["pwsh", "powershell"])
    engine_args: List[str] = field(
        default_factory=lambda: ["-NoLogo", "-NoProfile", "-NonInteractive"]
    )
    log_level: str = "error"

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _require_str(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string, got {type(value).__name__}")
    return value


def resolve_config_path(
    explicit: Optional[Path], environ: Optional[Mapping[str, str]] = None
) -> Optional[Path]:
    """Pick the config file: CLI > Env > none."""
    if explicit is not None:
        return explicit
    env = os.environ if environ is None else environ
    value = env.get(CONFIG_ENV_VAR)
    if value:
        return Path(os.path.expanduser(value))
    return None


def settings_from_mapping(data: Mapping[str, Any], console=None) -> Settings:
    """Build :class:`Settings` from a decoded config mapping.

    Keys may live under a ``[psshell]`` table or at the top level; the table
    wins when both are present.
    """
    section: Dict[str, Any] = {
        k: v for k, v in data.items() if k != CONFIG_SECTION and not isinstance(v, Mapping)
    }
    nested = data.get(CONFIG_SECTION)
    if nested is not None:
        if not isinstance(nested, Mapping):
            raise ValueError(f"'{CONFIG_SECTION}' must be a table")
        section = merge_mappings(section, nested)

    known = {"prompt", "exit_prompt", "executables", "engine_args", "log_level"}
    for key in sorted(set(section) - known):
        if console is not None:
            console.debug(f"Ignoring unknown setting: {key}")

    log_level = _require_str(section, "log_level")
    if log_level is not None and log_level not in LOG_LEVELS:
        raise ValueError(
            f"'log_level' must be one of {', '.join(LOG_LEVELS)}, got '{log_level}'"
        )

    executables = None
    if "executables" in section:
        executables = normalize_string_list(section["executables"], field_name="executables")
        if not executables:
            raise ValueError("'executables' must name at least one engine executable")

    engine_args = None
    if "engine_args" in section:
        engine_args = normalize_string_list(section["engine_args"], field_name="engine_args")

    return Settings().with_overrides(
        prompt=_require_str(section, "prompt"),
        exit_prompt=_require_str(section, "exit_prompt"),
        executables=executables,
        engine_args=engine_args,
        log_level=log_level,
    )


def load_settings(config_path: Optional[Path], console=None) -> Settings:
    """Load settings from ``config_path``; defaults when no path is given."""
    if config_path is None:
        return Settings()
    if not config_path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    if console is not None:
        console.debug(f"Loading config file: {config_path}")
    return settings_from_mapping(load_config_file(config_path), console)
