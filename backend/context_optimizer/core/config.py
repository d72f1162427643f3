"""Application configuration handling."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "CTXO_"
DEFAULT_CONFIG_PATH = Path("~/.config/context-optimizer/config.yaml")

DEFAULT_FILE_PATTERNS = [
    "**/*.{ts,tsx,js,jsx}",
    "**/*.{py,java,go,rs}",
    "**/*.{md,txt,json,yaml,yml}",
    "**/*.{sql,css,html}",
]

DEFAULT_EXCLUDE_PATTERNS = [
    "**/node_modules/**",
    "**/dist/**",
    "**/build/**",
    "**/.git/**",
    "**/coverage/**",
    "**/tmp/**",
    "**/temp/**",
    "**/.cache/**",
    "**/.vscode/**",
    "**/.idea/**",
    "**/vendor/**",
    "**/target/**",
    "**/out/**",
    "**/bin/**",
    "**/obj/**",
    "**/.context-optimizer/**",
    "**/search-index/**",
    "**/vector-index/**",
    "**/*.log",
    "**/*.backup",
]

DEFAULT_PRIORITY_WEIGHTS = {
    "core": 1.0,
    "config": 0.9,
    "utility": 0.7,
    "normal": 0.5,
    "test": 0.3,
}

_YAML_KEY_MAP: Mapping[tuple[str, ...], str] = {
    ("project", "root"): "project_root",
    ("storage", "path"): "storage_path",
    ("storage", "index_path"): "index_path",
    ("indexing", "git_enabled"): "git_enabled",
    ("indexing", "file_patterns"): "file_patterns",
    ("indexing", "exclude_patterns"): "exclude_patterns",
    ("indexing", "max_file_size"): "max_file_size",
    ("indexing", "vector_dimensions"): "vector_dimensions",
    ("indexing", "watch"): "watch_enabled",
    ("compression", "token_threshold"): "token_threshold",
    ("compression", "ratio"): "compression_ratio",
    ("compression", "preserve_important"): "preserve_important",
    ("compression", "importance_tags"): "importance_tags",
    ("compression", "max_summary_length"): "max_summary_length",
    ("packaging", "max_tokens"): "max_tokens",
    ("packaging", "max_files"): "max_files",
    ("packaging", "max_history_entries"): "max_history_entries",
    ("packaging", "priority_weights"): "priority_weights",
}

# Settings whose YAML value is itself a mapping and must not be flattened.
_MAPPING_FIELDS = {"priority_weights"}


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    project_root: Path = Field(default_factory=Path.cwd)
    storage_path: Path | None = None
    index_path: Path | None = None
    git_enabled: bool = True
    file_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_FILE_PATTERNS))
    exclude_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))
    max_file_size: int = Field(default=200_000, gt=0)
    vector_dimensions: int = Field(default=384, gt=0)
    watch_enabled: bool = False
    token_threshold: int = Field(default=1000, ge=0)
    compression_ratio: float = Field(default=0.7, gt=0.0, le=1.0)
    preserve_important: bool = True
    importance_tags: list[str] = Field(default_factory=lambda: ["core", "config"])
    max_summary_length: int = 500
    max_tokens: int = Field(default=8000, gt=0)
    max_files: int = Field(default=20, gt=0)
    max_history_entries: int = Field(default=10, ge=0)
    priority_weights: dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_PRIORITY_WEIGHTS))

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("project_root", "storage_path", "index_path", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path | None:
        if value is None:
            return None
        if isinstance(value, Path):
            return value.expanduser()
        if isinstance(value, str):
            return Path(value).expanduser()
        raise TypeError("path settings must be a path or string")

    @field_validator("file_patterns", "exclude_patterns", "importance_tags", mode="before")
    @classmethod
    def _split_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [part.strip() for part in value.split(";") if part.strip()]
        return value

    @property
    def resolved_storage_path(self) -> Path:
        return self.storage_path or self.project_root / ".context-optimizer" / "storage"

    @property
    def resolved_index_path(self) -> Path:
        return self.index_path or self.project_root

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            data.update(_flatten_yaml(raw))
        data.update(_load_env_overrides())
        return cls(**data)

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        resolved_default = DEFAULT_CONFIG_PATH.expanduser()
        return resolved_default if resolved_default.exists() else None


def _flatten_yaml(raw: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> dict[str, Any]:
    """Flatten nested YAML configuration to Settings field names."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        next_prefix = prefix + (key,)
        mapped_key = _YAML_KEY_MAP.get(next_prefix)
        if isinstance(value, Mapping) and mapped_key not in _MAPPING_FIELDS and key not in _MAPPING_FIELDS:
            flat.update(_flatten_yaml(value, prefix=next_prefix))
        elif mapped_key:
            flat[mapped_key] = value
        elif key in Settings.model_fields:
            flat[key] = value
    return flat


def _load_env_overrides() -> dict[str, Any]:
    """Map environment variables with CTXO_ prefix into Settings fields."""
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields and field_name not in _MAPPING_FIELDS:
            overrides[field_name] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = ["Settings", "get_settings"]
