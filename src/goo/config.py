"""
CLI configuration.

Read from ~/.goo/config.yaml (BOM-tolerant). GOO_HOME moves the whole ~/.goo
tree, which also holds the votes/ directory.

Environment overrides (applied after the file):
  GOO_KEY_NAME, GOO_REALM_PATH, GOO_CHAIN_ID, GOO_REMOTE
"""
from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


log = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yaml"

ENV_OVERRIDES = {
    "GOO_KEY_NAME": "keyname",
    "GOO_REALM_PATH": "realm_path",
    "GOO_CHAIN_ID": "chain_id",
    "GOO_REMOTE": "remote",
}


@dataclass
class Config:
    keyname: str = "mykey"
    realm_path: str = "gno.land/r/intermarch3/goo"
    chain_id: str = "dev"
    remote: str = "tcp://127.0.0.1:26657"
    gas_fee: str = "1000000ugnot"
    gas_wanted: int = 20000000
    google_api_key: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        cfg = cls()
        for f in fields(cls):
            if f.name in data and data[f.name] is not None:
                setattr(cfg, f.name, _coerce(f.name, data[f.name]))
        return cfg


def _coerce(name: str, value: Any) -> Any:
    if name == "gas_wanted":
        return int(value)
    return str(value)


def goo_home() -> Path:
    envp = os.getenv("GOO_HOME", "").strip()
    return Path(envp) if envp else Path.home() / ".goo"


def config_path() -> Path:
    return goo_home() / CONFIG_FILENAME


def _apply_env(cfg: Config) -> Config:
    for env_name, key in ENV_OVERRIDES.items():
        v = os.getenv(env_name, "").strip()
        if v:
            setattr(cfg, key, v)
    return cfg


def load_config(path: Optional[Path] = None, key_override: str = "") -> Config:
    """
    Missing file -> defaults. Unreadable file -> defaults plus a warning.
    """
    path = path or config_path()
    cfg = Config()
    if path.exists():
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8-sig")) or {}
            if not isinstance(data, dict):
                raise ValueError("config root must be a mapping")
            cfg = Config.from_dict(data)
        except (yaml.YAMLError, ValueError, OSError) as e:
            log.warning("failed to read config %s: %s; using defaults", path, e)
            cfg = Config()
    cfg = _apply_env(cfg)
    if key_override:
        cfg.keyname = key_override
    return cfg


def save_config(cfg: Config, path: Optional[Path] = None) -> Path:
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(cfg.to_dict(), sort_keys=False), encoding="utf-8")
    return path


def init_config(path: Optional[Path] = None, google_api_key: str = "") -> Path:
    path = path or config_path()
    if path.exists():
        raise FileExistsError(f"config file already exists at {path}")
    return save_config(Config(google_api_key=google_api_key), path)


def set_value(key: str, value: str, path: Optional[Path] = None) -> Config:
    names = {f.name for f in fields(Config)}
    if key not in names:
        raise ValueError(f"unknown config key '{key}'. Allowed: {sorted(names)}")
    path = path or config_path()
    cfg = Config()
    if path.exists():
        data = yaml.safe_load(path.read_text(encoding="utf-8-sig")) or {}
        cfg = Config.from_dict(data)
    setattr(cfg, key, _coerce(key, value))
    save_config(cfg, path)
    return cfg


def mask_secret(value: str, keep: int = 8) -> str:
    if not value:
        return "(not configured)"
    if len(value) <= keep:
        return value
    return value[:keep] + "..."
