from __future__ import annotations
from pathlib import Path
from typing import Any, Dict

# Python 3.11 has tomllib; fall back to "tomli" on older versions
try:
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore[no-redef]


REPO = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG = REPO / "config.toml"
DEFAULT_RULES = Path(__file__).resolve().parent / "coffee_rules.yaml"

# used for any key config.toml leaves out
DEFAULTS: Dict[str, Dict[str, Any]] = {
    "paths": {
        "alipay_dir": "alipay-record",
        "wechatpay_dir": "wechatpay-record",
        "output": "data/coffee-data.json",
        "db": "data/coffee-diary.sqlite",
    },
    "ingest": {"target_year": 2025},
    "privacy": {"scrub_account": False},
    "logging": {"level": "INFO"},
}


def load_config(config_path: Path | None = None) -> Dict[str, Any]:
    """
    Load config.toml (repo root unless a path is given).
    Raises FileNotFoundError when the file is missing.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with config_path.open("rb") as f:
        return tomllib.load(f)


def setting(cfg: Dict[str, Any], section: str, key: str) -> Any:
    """cfg[section][key], or the built-in default."""
    value = (cfg.get(section) or {}).get(key)
    return DEFAULTS[section][key] if value is None else value
