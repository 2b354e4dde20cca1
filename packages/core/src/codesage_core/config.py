"""Configuration loading and the per-run ReviewConfig snapshot.

Precedence, lowest to highest:
  1. Built-in defaults
  2. .codesage.yml in the current directory, else ~/.codesage.yml
  3. CLI argument overrides

Environment variables are read here and nowhere else: API keys and the Ollama
URL are folded into the config dict, and build_review_config() turns that
dict into an immutable ReviewConfig that the pipeline receives explicitly.
"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from rich.console import Console
from rich.markup import escape

from codesage_core.errors import BackendConfigError
from codesage_core.models import DEFAULT_FOCUS_AREAS, BackendConfig, FileFilter, ReviewConfig

console = Console(stderr=True)
logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".codesage.yml"

DEFAULT_CONFIG: dict = {
    "llm": {
        "provider": "openai",  # openai, anthropic, ollama, qwen
        "model": None,  # None = the provider's default model
        "temperature": 0.1,
        "max_tokens": 2000,
        "api_key": None,  # None = read from the provider's environment variable
        "base_url": None,
        "timeout": None,
    },
    "git": {
        "default_branch": "main",
        "include": [],  # empty = every code file
        "exclude": [],
    },
    "review": {
        "focus_areas": list(DEFAULT_FOCUS_AREAS),
    },
    "output": {
        "format": "console",
        "verbose": False,
        "colors": True,
    },
    "auto_fix": {
        "enabled": False,
        "confirm_before_apply": True,
        "create_backups": True,
    },
}

# Provider → environment variable holding its API key.
API_KEY_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}
OLLAMA_PROVIDERS = ("ollama", "qwen")


def default_config_path() -> Path:
    """Return ./.codesage.yml if it exists, else ~/.codesage.yml if that exists, else the local path."""
    local = Path(CONFIG_FILENAME).resolve()
    if local.exists():
        return local
    global_config = Path.home() / CONFIG_FILENAME
    if global_config.exists():
        return global_config
    return local


def deep_merge(base: dict, override: dict) -> dict:
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(config_path: Optional[str] = None, cli_overrides: Optional[dict] = None) -> dict:
    """Load configuration by merging defaults, the YAML file, and CLI overrides.

    ``cli_overrides`` uses dotted keys (``{"llm.model": "gpt-4o"}``); None
    values are ignored so unset CLI options never clobber the file.
    """
    path = Path(config_path) if config_path else default_config_path()
    config = copy.deepcopy(DEFAULT_CONFIG)

    if path.exists():
        try:
            with open(path) as f:
                file_config = yaml.safe_load(f) or {}
            if not isinstance(file_config, dict):
                raise ValueError("top level must be a mapping")
            config = deep_merge(config, file_config)
        except (yaml.YAMLError, ValueError, OSError) as e:
            logger.debug("Could not load config file %s: %s", path, e)
            console.print(f"[red]Warning: Could not load config file {path}: {escape(str(e))}. Using defaults.[/red]")

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                set_value(config, key, value)

    _resolve_environment(config)
    config["config_path"] = str(path)
    return config


def _resolve_environment(config: dict) -> None:
    """Fill credentials the config file left unset from the environment."""
    llm = config["llm"]
    provider = str(llm.get("provider") or "").lower()
    env_var = API_KEY_ENV_VARS.get(provider)
    if env_var and not llm.get("api_key"):
        llm["api_key"] = os.environ.get(env_var)
    if provider in OLLAMA_PROVIDERS and not llm.get("base_url"):
        llm["base_url"] = os.environ.get("OLLAMA_BASE_URL")


def get_value(config: dict, key_path: str) -> Any:
    current: Any = config
    for key in key_path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def parse_value(text: str) -> Any:
    """Parse a CLI string as a YAML scalar so "0.3" stores a float and "true" a bool."""
    if not text.strip():
        return text
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError:
        return text


def set_value(config: dict, key_path: str, value: Any) -> None:
    """Set a dotted key, creating intermediate mappings as needed."""
    keys = key_path.split(".")
    target = config
    for key in keys[:-1]:
        if not isinstance(target.get(key), dict):
            target[key] = {}
        target = target[key]
    target[keys[-1]] = value


def _persistable(config: dict) -> dict:
    """Strip runtime-only keys and environment-sourced secrets before writing to disk."""
    data = copy.deepcopy(config)
    data.pop("config_path", None)
    llm = data.get("llm", {})
    provider = str(llm.get("provider") or "").lower()
    env_var = API_KEY_ENV_VARS.get(provider)
    if env_var and llm.get("api_key") and llm.get("api_key") == os.environ.get(env_var):
        llm["api_key"] = None
    if llm.get("base_url") and llm.get("base_url") == os.environ.get("OLLAMA_BASE_URL"):
        llm["base_url"] = None
    return data


def save_config(config: dict, config_path: Optional[str] = None) -> Path:
    path = Path(config_path or config.get("config_path") or default_config_path())
    path.write_text(yaml.dump(_persistable(config), default_flow_style=False, sort_keys=False))
    return path


def reset_config(config_path: Optional[str] = None) -> Path:
    path = Path(config_path) if config_path else default_config_path()
    path.write_text(yaml.dump(copy.deepcopy(DEFAULT_CONFIG), default_flow_style=False, sort_keys=False))
    return path


def _as_tuple(value) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


def _number(llm: dict, key: str, default, cast):
    """Read a numeric llm setting; unset (None) means the default."""
    value = llm.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        raise BackendConfigError(f"llm.{key} must be a number, got {value!r}")
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise BackendConfigError(f"llm.{key} must be a number, got {value!r}")


def build_backend_config(config: dict) -> BackendConfig:
    """Raises BackendConfigError when a numeric llm setting cannot be parsed."""
    llm = config.get("llm") or {}
    timeout = _number(llm, "timeout", None, float)
    return BackendConfig(
        provider=str(llm.get("provider") or "openai").lower(),
        model=llm.get("model") or None,
        temperature=_number(llm, "temperature", 0.1, float),
        max_tokens=_number(llm, "max_tokens", 2000, int),
        api_key=llm.get("api_key") or None,
        base_url=llm.get("base_url") or None,
        timeout=timeout or None,
    )


def build_review_config(
    config: dict,
    branch: Optional[str] = None,
    files: Optional[list[str]] = None,
) -> ReviewConfig:
    """Freeze a loaded config dict into the ReviewConfig the pipeline runs with."""
    git = config.get("git", {})
    output = config.get("output", {})
    auto_fix = config.get("auto_fix", {})
    review = config.get("review", {})
    return ReviewConfig(
        branch=branch or git.get("default_branch") or "main",
        files=tuple(files) if files else None,
        file_filter=FileFilter(include=_as_tuple(git.get("include")), exclude=_as_tuple(git.get("exclude"))),
        output_format=str(output.get("format") or "console").lower(),
        backend=build_backend_config(config),
        auto_fix_enabled=bool(auto_fix.get("enabled", False)),
        confirm_before_fix=bool(auto_fix.get("confirm_before_apply", True)),
        create_backups=bool(auto_fix.get("create_backups", True)),
        focus_areas=_as_tuple(review.get("focus_areas")) or DEFAULT_FOCUS_AREAS,
        colors=bool(output.get("colors", True)),
        verbose=bool(output.get("verbose", False)),
    )
