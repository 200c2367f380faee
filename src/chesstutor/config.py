from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, Mapping, Optional


ENV_PREFIX = "CHESSTUTOR_"
CONFIG_ENV = "CHESSTUTOR_CONFIG"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"invalid boolean: {raw!r}")


def _parse_optional_int(raw: str) -> Optional[int]:
    return None if raw.strip().lower() in ("", "none") else int(raw)


def _parse_optional_str(raw: str) -> Optional[str]:
    return raw or None


_ENV_PARSERS: Dict[str, Callable[[str], Any]] = {
    "default_difficulty": int,
    "book_enabled": _parse_bool,
    "book_path": _parse_optional_str,
    "book_max_plies": int,
    "book_seed": _parse_optional_int,
    "log_level": str,
    "host": str,
    "port": int,
}


@dataclass
class Settings:
    """Service settings.

    Attributes:
        default_difficulty (int): Difficulty (1..5) for games created without one.
        book_enabled (bool): Whether the computer opponent consults a book.
        book_path (Optional[str]): JSON book to load instead of the built-in lines.
        book_max_plies (int): Last ply at which the book is consulted.
        book_seed (Optional[int]): Seed for book choices; ``None`` is unseeded.
        log_level (str): Root logging level.
        host (str): Bind address for the CLI server.
        port (int): Bind port for the CLI server.
    """

    default_difficulty: int = 3
    book_enabled: bool = True
    book_path: Optional[str] = None
    book_max_plies: int = 10
    book_seed: Optional[int] = None
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if not 1 <= int(self.default_difficulty) <= 5:
            raise ValueError("default_difficulty must be 1..5")
        if self.book_max_plies < 0:
            raise ValueError("book_max_plies must be >= 0")
        if str(self.log_level).upper() not in _LOG_LEVELS:
            raise ValueError(f"invalid log_level: {self.log_level!r}")
        self.log_level = str(self.log_level).upper()
        if not 0 < int(self.port) < 65536:
            raise ValueError("port must be 1..65535")

    @classmethod
    def load(
        cls, path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
    ) -> "Settings":
        """Build settings from defaults, an optional TOML file, and the environment.

        Args:
            path (Optional[str]): TOML file; defaults to ``$CHESSTUTOR_CONFIG``.
                A missing default file is ignored, a missing explicit file is not.
            environ (Optional[Mapping[str, str]]): Environment to read
                ``CHESSTUTOR_*`` overrides from; defaults to ``os.environ``.

        Raises:
            FileNotFoundError: If an explicit ``path`` does not exist.
            ValueError: If a value fails to parse or validate.
        """
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        known = {f.name for f in fields(cls)}

        toml_path = path or env.get(CONFIG_ENV)
        if toml_path:
            if not os.path.exists(toml_path):
                if path:
                    raise FileNotFoundError(toml_path)
            else:
                with open(toml_path, "rb") as f:
                    raw = tomllib.load(f)
                section = raw.get("chesstutor", raw)
                for k, v in section.items():
                    if k in known:
                        values[k] = v

        for name, parse in _ENV_PARSERS.items():
            raw_value = env.get(ENV_PREFIX + name.upper())
            if raw_value is None:
                continue
            try:
                values[name] = parse(raw_value)
            except ValueError as e:
                raise ValueError(f"invalid {ENV_PREFIX}{name.upper()}: {raw_value!r}") from e

        return cls(**values)
