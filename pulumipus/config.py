"""
Config loader for pulumipus.
Reads config.yaml once at startup. All other modules import from here.
Set PULUMIPUS_CONFIG to point at a different file.
"""

import logging
import os
import re
from pathlib import Path

import yaml
from dotenv import load_dotenv

load_dotenv()

_CONFIG_PATH = Path(__file__).parent.parent / "config.yaml"

_config: dict | None = None

# Used when config.yaml is missing a section entirely
DEFAULTS = {
    "api": {"url": "https://api.pulumi.com", "timeout": 120},
    "console": {"url": "https://app.pulumi.com"},
    "participant": {"id": "pulumi.pulumipus"},
    "wiretap": {"enabled": True, "path": "./data/wire.jsonl"},
    "logging": {"level": "INFO", "file": ""},
    "server": {"host": "127.0.0.1", "port": 8710},
}


def _resolve_env_vars(value: str) -> str:
    """Replace ${ENV_VAR} patterns with actual environment variable values."""
    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, "")
    return re.sub(r"\$\{(\w+)\}", replacer, value)


def _walk_and_resolve(obj):
    """Recursively resolve env vars in all string values."""
    if isinstance(obj, dict):
        return {k: _walk_and_resolve(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_walk_and_resolve(v) for v in obj]
    elif isinstance(obj, str):
        return _resolve_env_vars(obj)
    return obj


def _with_defaults(raw: dict) -> dict:
    merged = {}
    for section, values in DEFAULTS.items():
        merged[section] = {**values, **(raw.get(section) or {})}
    for section, values in raw.items():
        merged.setdefault(section, values)
    return merged


def load_config(path: Path | None = None) -> dict:
    """Load and cache config from YAML file."""
    global _config
    if _config is not None:
        return _config

    env_path = os.environ.get("PULUMIPUS_CONFIG")
    config_path = path or (Path(env_path) if env_path else _CONFIG_PATH)
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    _config = _with_defaults(_walk_and_resolve(raw))
    return _config


def get_config() -> dict:
    """Return cached config, loading if necessary."""
    if _config is None:
        return load_config()
    return _config


def reset_config():
    """Drop the cached config so the next get_config() reads the file again."""
    global _config
    _config = None


def setup_logging(cfg: dict):
    log_cfg = cfg.get("logging", {})
    level = getattr(logging, str(log_cfg.get("level", "INFO")).upper(), logging.INFO)
    log_file = log_cfg.get("file")

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )
