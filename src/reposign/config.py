"""Runtime configuration.

Loads from environment first (``.env`` honored via python-dotenv), then an
optional YAML file, with environment variables taking precedence.
"""
from __future__ import annotations

import os
import platform
from dataclasses import dataclass
from typing import Any, Dict

from dotenv import load_dotenv

try:
    import yaml  # type: ignore
except Exception:  # pragma: no cover
    yaml = None

load_dotenv()

CONFIG_PATH = os.getenv("REPOSIGN_CONFIG", os.path.join("config", "reposign.yml"))
PASSPHRASE_ENV = os.getenv("XBPS_PASSPHRASE_ENV", "XBPS_PASSPHRASE")

COMPRESSIONS = ("none", "gzip", "bzip2", "xz", "zstd")

_DEFAULT: Dict[str, Any] = {
    "compression": "zstd",
    "verbose": False,
    "lock_wait": True,
    "passphrase_env": PASSPHRASE_ENV,
}


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


_ENV_MAP = {
    "compression": ("REPOSIGN_COMPRESSION", str),
    "verbose": ("REPOSIGN_VERBOSE", _as_bool),
    "lock_wait": ("REPOSIGN_LOCK_WAIT", _as_bool),
    "passphrase_env": ("XBPS_PASSPHRASE_ENV", str),
}


def host_arch() -> str:
    return os.getenv("XBPS_TARGET_ARCH") or os.getenv("XBPS_ARCH") or platform.machine()


def default_privkey() -> str:
    return os.path.join(os.path.expanduser(os.getenv("HOME", "~")), ".ssh", "id_rsa")


@dataclass
class Settings:
    arch: str = ""
    compression: str = _DEFAULT["compression"]
    verbose: bool = _DEFAULT["verbose"]
    lock_wait: bool = _DEFAULT["lock_wait"]
    passphrase_env: str = _DEFAULT["passphrase_env"]
    default_privkey: str = ""

    def __post_init__(self):
        if not self.arch:
            self.arch = host_arch()
        if not self.default_privkey:
            self.default_privkey = default_privkey()
        if self.compression not in COMPRESSIONS:
            raise ValueError(f"unsupported compression: {self.compression}")

    def passphrase(self) -> bytes | None:
        value = os.getenv(self.passphrase_env)
        return value.encode() if value else None


def _read_file(path: str) -> Dict[str, Any]:
    if not (yaml and os.path.exists(path)):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level")
    return data


def load_settings(path: str | None = None, **overrides: Any) -> Settings:
    """Build Settings from defaults, the YAML file, the environment and overrides.

    Not cached: every orchestrator call sees the current environment.
    """
    data: Dict[str, Any] = dict(_DEFAULT)
    data.update({k: v for k, v in _read_file(path or os.getenv("REPOSIGN_CONFIG", CONFIG_PATH)).items() if k in Settings.__dataclass_fields__})
    for k, (env, cast) in _ENV_MAP.items():
        if env in os.environ:
            data[k] = cast(os.environ[env])
    if os.getenv("XBPS_TARGET_ARCH") or os.getenv("XBPS_ARCH"):
        data["arch"] = host_arch()
    data.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(
        arch=str(data.get("arch") or ""),
        compression=str(data["compression"]),
        verbose=_as_bool(data["verbose"]),
        lock_wait=_as_bool(data["lock_wait"]),
        passphrase_env=str(data["passphrase_env"]),
        default_privkey=str(data.get("default_privkey") or ""),
    )
