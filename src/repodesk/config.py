"""TOML configuration."""

from __future__ import annotations

import tomllib
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from repodesk.errors import ConfigError

DEFAULT_CONFIG_PATH = ".repodesk/config.toml"
DEFAULT_DB_PATH = ".repodesk/state.db"


class GeneralConfig(BaseModel):
    repo_path: Path = Path(".")
    db_path: str = DEFAULT_DB_PATH
    session_key: str = Field(default="default", min_length=1)


class EditorConfig(BaseModel):
    debounce_ms: int = Field(default=500, ge=0)

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000


class RepoDeskConfig(BaseModel):
    general: GeneralConfig = Field(default_factory=GeneralConfig)
    editor: EditorConfig = Field(default_factory=EditorConfig)

    @classmethod
    def load(cls, path: str | Path) -> RepoDeskConfig:
        """Load config from ``path``; a missing file yields defaults.

        Relative ``repo_path``/``db_path`` values are resolved against the
        directory that holds the config's ``.repodesk`` folder.
        """
        config_path = Path(path)
        if not config_path.exists():
            return cls()
        try:
            data = tomllib.loads(config_path.read_text(encoding="utf-8"))
            config = cls.model_validate(data)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in {config_path}: {exc}") from exc
        except PydanticValidationError as exc:
            raise ConfigError(f"Invalid configuration in {config_path}: {exc}") from exc

        base = config_path.parent
        if base.name == ".repodesk":
            base = base.parent
        general = config.general
        if not general.repo_path.is_absolute():
            general.repo_path = base / general.repo_path
        if general.db_path != ":memory:" and not Path(general.db_path).is_absolute():
            general.db_path = str(base / general.db_path)
        return config
