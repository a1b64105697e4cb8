from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os
import sys

DEFAULT_RATE = 36.5
DEFAULT_ASSISTANT_MODEL = "gemini-2.5-flash"


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    db_path: Path
    logs_dir: Path
    exports_dir: Path


@dataclass(frozen=True)
class StoreSettings:
    default_rate: float = DEFAULT_RATE
    strict_stock: bool = False
    strict_settle: bool = False
    assistant_api_key: str = ""
    assistant_model: str = DEFAULT_ASSISTANT_MODEL


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def get_app_paths(app_name: str = "Venstore") -> AppPaths:
    if sys.platform.startswith("win"):
        base = _windows_appdata() / app_name
    elif sys.platform == "darwin":
        base = _mac_app_support() / app_name
    else:
        base = Path.home() / f".{app_name.lower()}"

    logs = base / "logs"
    exports = base / "exports"
    db = base / "store.db"

    base.mkdir(parents=True, exist_ok=True)
    logs.mkdir(parents=True, exist_ok=True)
    exports.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, db_path=db, logs_dir=logs, exports_dir=exports)


def _env_flag(name: str, env: dict[str, str]) -> bool:
    return env.get(name, "").strip().lower() in {"1", "true", "yes", "on"}


def load_settings(env: dict[str, str] | None = None) -> StoreSettings:
    env = dict(os.environ) if env is None else env

    raw_rate = env.get("VENSTORE_DEFAULT_RATE", "").strip()
    try:
        default_rate = float(raw_rate) if raw_rate else DEFAULT_RATE
    except ValueError:
        default_rate = DEFAULT_RATE
    if not default_rate > 0:
        default_rate = DEFAULT_RATE

    api_key = env.get("GEMINI_API_KEY", "").strip() or env.get("API_KEY", "").strip()

    return StoreSettings(
        default_rate=default_rate,
        strict_stock=_env_flag("VENSTORE_STRICT_STOCK", env),
        strict_settle=_env_flag("VENSTORE_STRICT_SETTLE", env),
        assistant_api_key=api_key,
        assistant_model=env.get("VENSTORE_ASSISTANT_MODEL", "").strip() or DEFAULT_ASSISTANT_MODEL,
    )
