"""Application configuration: settings schema and workdb.yaml loader"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field


CONFIG_FILE = "workdb.yaml"


class Settings(BaseModel):
    description_filename:  str = Field(default="description.md", description="Name of each work's description file")
    scattered_mode_folder: str = Field(default=".workdb", description="Subfolder holding the description in scattered mode")
    parser_config:         str = Field(default="gfm-like", description="MarkdownIt parser preset name")
    default_language:      str = Field(default="default", description="Language key used when no :: markers exist")
    id_length:             int = Field(default=5, ge=4, description="Length of generated block IDs")
    extract_colors:        bool = Field(default=True, description="Extract dominant colors from images")
    build_metadata_file:   Optional[str] = Field(default=None, description="Build metadata path; beside the output if unset")
    lock_filename:         str = Field(default=".workdb-build-lock", description="Build lock sentinel, beside the output")
    log_level:             str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR)$")


def config_file_found(path: Optional[Path] = None) -> bool:
    """Whether a configuration file exists; the defaults are used otherwise."""
    return (path or Path(CONFIG_FILE)).exists()


def load_config(overrides: dict[str, Any] = None, path: Optional[Path] = None) -> Settings:
    """Load Settings from workdb.yaml, then WORKDB_<FIELD> env vars, then non-None CLI overrides."""
    config_path = path or Path(CONFIG_FILE)
    data: dict[str, Any] = {}
    if config_path.exists():
        try:
            data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {config_path.name}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Invalid {config_path.name}: expected a mapping, got {type(data).__name__}")

    for name in Settings.model_fields:
        if val := os.getenv(f"WORKDB_{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**data)
