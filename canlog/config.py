from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from canlog.core.frames.parser import FORMAT_ORDERS, ParserConfig


CONFIG_FILE_NAME = "canlog.json"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class CanlogSettings:
    config_dir: Path
    default_format: str = "log"
    # None means the bundled default catalog.
    matrix_path: Path | None = None

    @property
    def config_file(self) -> Path:
        return self.config_dir / CONFIG_FILE_NAME

    def parser_config(self) -> ParserConfig:
        return ParserConfig(default_format=self.default_format)  # type: ignore[arg-type]


def _xdg_config_home() -> Path:
    env = (os.getenv("XDG_CONFIG_HOME", "") or "").strip()
    if env:
        return Path(env).expanduser()
    return Path("~/.config").expanduser()


def _env(name: str) -> str | None:
    value = (os.getenv(name, "") or "").strip()
    return value or None


def load_settings(
    *,
    config_dir: str | Path | None = None,
    default_format: str | None = None,
    matrix_path: str | Path | None = None,
) -> CanlogSettings:
    """Resolve settings.

    Precedence (highest to lowest):
    1) explicit parameters (typically CLI)
    2) env vars CANLOG_CONFIG_DIR, CANLOG_DEFAULT_FORMAT, CANLOG_MATRIX
    3) config file in config_dir (canlog.json): default_format, matrix
    4) defaults (~/.config/canlog, "log" order, bundled catalog)
    """

    if config_dir is not None:
        cfg = Path(config_dir).expanduser()
    else:
        env = _env("CANLOG_CONFIG_DIR")
        cfg = Path(env).expanduser() if env else _xdg_config_home() / "canlog"

    fmt = default_format or _env("CANLOG_DEFAULT_FORMAT")
    matrix_raw: str | Path | None = matrix_path if matrix_path is not None else _env("CANLOG_MATRIX")

    obj = _read_config_file(cfg / CONFIG_FILE_NAME)
    if fmt is None:
        v = obj.get("default_format")
        if isinstance(v, str) and v.strip():
            fmt = v
    if matrix_raw is None:
        v = obj.get("matrix")
        if isinstance(v, str) and v.strip():
            matrix_raw = v

    fmt = (fmt or "log").strip().lower()
    if fmt not in FORMAT_ORDERS:
        raise ConfigError(f"invalid default format {fmt!r} (expected one of: {', '.join(sorted(FORMAT_ORDERS))})")

    matrix = Path(str(matrix_raw)).expanduser() if matrix_raw is not None and str(matrix_raw).strip() else None
    return CanlogSettings(config_dir=cfg, default_format=fmt, matrix_path=matrix)


def _read_config_file(path: Path) -> dict[str, Any]:
    # A broken config file must not stop log conversion; fall back to defaults.
    if not path.exists():
        return {}
    try:
        obj = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return obj if isinstance(obj, dict) else {}


def write_default_config(path: Path, *, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, sort_keys=True, indent=2) + "\n", encoding="utf-8")
