from __future__ import annotations

import copy
import os
import re
import tomllib
from pathlib import Path
from typing import Any, Dict, Sequence, Tuple


CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"
PROFILE_DIR = CONFIG_DIR / "profiles"
DEFAULT_BASE_CONFIG = CONFIG_DIR / "base.toml"

DEFAULTS: Dict[str, Any] = {
    "orchestrator": {
        "settle_delay_sec": 2.0,
        "max_product_attempts": 2,
        "max_add_to_cart_attempts": 3,
        "fast_add_to_cart_sec": 30,
    },
    "checkout_profile": {
        "email": "mystery.shopper@example.com",
        "phone": "5551234567",
        "first_name": "Test",
        "last_name": "Shopper",
        "address": "123 Main Street",
        "city": "Istanbul",
        "postal_code": "34000",
        "country": "Turkey",
    },
    "runtime": {
        "provider": "browserbase",
        "project_id": "",
        "api_base": "",
        "headless": True,
        "viewport": {"width": 1280, "height": 900},
        "session_replay_url": "https://browserbase.com/sessions/{session_id}",
        "action_timeout_sec": 30,
        "max_plan_steps": 4,
    },
    "openai": {
        "model": "gpt-4o-mini",
        "temperature": 0.0,
        "timeout_sec": 60,
        "rate_limit": -1,
        "base_url": "",
    },
    "api": {
        "run_timeout_sec": 600,
        "cors_origins": ["*"],
    },
    "store": {
        "dsn": "",
    },
    "logging": {
        "level": "INFO",
        "log_file": "",
    },
}


class SettingsLoadError(RuntimeError):
    pass


def _load_toml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise SettingsLoadError(f"Config file not found: {path}")
    try:
        with path.open("rb") as fh:
            data = tomllib.load(fh)
    except tomllib.TOMLDecodeError as e:
        raise SettingsLoadError(f"Config file {path} is not valid TOML: {e}") from e
    if not isinstance(data, dict):
        raise SettingsLoadError(f"Config file {path} did not produce a dictionary")
    return data


def _merge_dicts(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    result = copy.deepcopy(base)
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dicts(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


# a value that is only an unset variable reference becomes empty
_UNSET_REF = re.compile(r"^\$\{?\w+\}?$")


def _expand_env(data: Any) -> Any:
    if isinstance(data, str):
        expanded = os.path.expandvars(data)
        return "" if _UNSET_REF.match(expanded) else expanded
    if isinstance(data, dict):
        return {k: _expand_env(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_expand_env(v) for v in data]
    return data


_PATH_FIELDS: Tuple[Tuple[str, ...], ...] = (
    ("logging", "log_file"),
)


def _resolve_paths(config: Dict[str, Any], base_dir: Path) -> Dict[str, Any]:
    cfg = copy.deepcopy(config)
    for keys in _PATH_FIELDS:
        container = cfg
        for key in keys[:-1]:
            if not isinstance(container, dict):
                container = None
                break
            container = container.get(key)
        if not isinstance(container, dict):
            continue
        leaf = keys[-1]
        value = container.get(leaf)
        if isinstance(value, str) and value:
            path = Path(os.path.expanduser(value))
            if not path.is_absolute():
                path = (base_dir / path).resolve()
            container[leaf] = str(path)
    return cfg


def load_settings(
    config_path: Path | None = None,
    profiles: Sequence[str] | None = None,
    profile_dir: Path | None = None,
) -> Tuple[Dict[str, Any], Path]:
    """Load configuration as a merged dictionary and return with its base directory.

    Built-in defaults are overlaid by the base TOML file, then by each profile in order.
    A missing explicit ``config_path`` is an error; a missing default ``base.toml`` is not.
    """

    config = copy.deepcopy(DEFAULTS)
    if config_path is not None:
        base_path = Path(config_path).resolve()
        config = _merge_dicts(config, _load_toml(base_path))
    else:
        base_path = DEFAULT_BASE_CONFIG
        if base_path.exists():
            config = _merge_dicts(config, _load_toml(base_path))
    base_dir = base_path.parent

    profiles_root = Path(profile_dir) if profile_dir is not None else (
        base_dir / "profiles" if config_path is not None else PROFILE_DIR
    )
    for profile in profiles or []:
        config = _merge_dicts(config, _load_toml(profiles_root / f"{profile}.toml"))

    config = _expand_env(config)
    config = _resolve_paths(config, base_dir)
    config.setdefault("__meta", {})["config_dir"] = str(base_dir)
    config["__meta"]["config_path"] = str(base_path)
    if profiles:
        config["__meta"]["profiles"] = list(profiles)
    return config, base_dir


__all__ = ["load_settings", "SettingsLoadError", "DEFAULTS", "DEFAULT_BASE_CONFIG", "PROFILE_DIR"]
