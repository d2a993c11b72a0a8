"""Connection configuration loading and connection-string formatting."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import tomllib

from pydantic import BaseModel, Field

CONFIG_FILE = Path.home() / ".config" / "chpool" / "config.toml"

DEFAULT_DRIVER = "/usr/local/lib/libclickhouseodbc.so"
DEFAULT_HOSTNAME = "localhost"
DEFAULT_PORT = 8123
DEFAULT_DATABASE = "default"
DEFAULT_TIMEOUT_MS = 60_000

_STRING_KEYS = ("driver", "hostname", "database", "username", "password")


class ConnectionConfig(BaseModel):
    """Options used to open a ClickHouse ODBC connection; unset fields take defaults."""

    driver: str | None = None
    hostname: str | None = None
    port: int | None = None
    database: str | None = None
    username: str | None = None
    password: str | None = None
    timeout: int | None = None
    options: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def coerce(cls, value: ConnectionConfig | Mapping[str, Any] | None) -> ConnectionConfig:
        """Accept a config, a plain mapping of options, or ``None`` for defaults."""

        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        return cls.model_validate(dict(value))

    @property
    def timeout_ms(self) -> int:
        return self.timeout or DEFAULT_TIMEOUT_MS

    def connection_options(self) -> list[tuple[str, object]]:
        """Ordered ``(KEY, value)`` pairs making up the driver connection string."""

        return [
            ("DRIVER", self.driver or DEFAULT_DRIVER),
            ("SERVER", self.hostname or DEFAULT_HOSTNAME),
            ("PORT", self.port or DEFAULT_PORT),
            ("USERNAME", self.username or ""),
            ("PASSWORD", self.password or ""),
            ("DATABASE", self.database or DEFAULT_DATABASE),
            ("TIMEOUT", self.timeout_ms),
        ]

    def connection_string(self) -> str:
        return _join(self.connection_options())

    def redacted_connection_string(self) -> str:
        """Connection string safe for log output."""

        pairs = [
            (key, "***" if key == "PASSWORD" and value else value)
            for key, value in self.connection_options()
        ]
        return _join(pairs)

    def resolved(self) -> dict[str, object]:
        """Effective option values with defaults applied, in connection-string order."""

        resolved: dict[str, object] = {key.lower(): value for key, value in self.connection_options()}
        resolved.update(self.options)
        return resolved


def load_config(path: Path | None = None) -> ConnectionConfig:
    """Load the ``[connection]`` table from disk; fall back to defaults if missing."""

    try:
        data = _read_config_file(path or CONFIG_FILE)
    except FileNotFoundError:
        return ConnectionConfig()
    except (tomllib.TOMLDecodeError, OSError):
        return ConnectionConfig()
    return ConnectionConfig(**data)


def save_config(config: ConnectionConfig, path: Path | None = None) -> None:
    """Persist the connection table to disk."""

    target = path or CONFIG_FILE
    target.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = ["[connection]"]
    for key in _STRING_KEYS:
        value = getattr(config, key)
        if value is not None:
            lines.append(f"{key} = {_toml_string(value)}")
    if config.port is not None:
        lines.append(f"port = {config.port}")
    if config.timeout is not None:
        lines.append(f"timeout = {config.timeout}")
    if config.options:
        lines.append("")
        lines.append("[connection.options]")
        for name in sorted(config.options):
            lines.append(f"{name} = {_toml_value(config.options[name])}")
    target.write_text("\n".join(lines) + "\n")


def _read_config_file(path: Path) -> dict[str, object]:
    with path.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    table = raw.get("connection") if isinstance(raw, dict) else None
    if not isinstance(table, dict):
        return data
    for key in _STRING_KEYS:
        value = table.get(key)
        if isinstance(value, str):
            data[key] = value
    for key in ("port", "timeout"):
        value = table.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            data[key] = value
    options = table.get("options")
    if isinstance(options, dict):
        data["options"] = {str(name): value for name, value in options.items()}
    return data


def _join(pairs: list[tuple[str, object]]) -> str:
    return "".join(f"{key}={value};" for key, value in pairs)


def _toml_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return _toml_string(str(value))


def _toml_string(value: str) -> str:
    escaped = value.translate(_TOML_ESCAPES)
    return f'"{escaped}"'


_TOML_ESCAPES = str.maketrans({"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t"})


__all__ = [
    "CONFIG_FILE",
    "ConnectionConfig",
    "DEFAULT_DATABASE",
    "DEFAULT_DRIVER",
    "DEFAULT_HOSTNAME",
    "DEFAULT_PORT",
    "DEFAULT_TIMEOUT_MS",
    "load_config",
    "save_config",
]
