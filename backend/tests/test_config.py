"""Tests for settings loading."""

from pathlib import Path

import yaml

from context_optimizer.core.config import DEFAULT_PRIORITY_WEIGHTS, Settings, get_settings


def test_defaults(monkeypatch) -> None:
    for key in ("CTXO_PROJECT_ROOT", "CTXO_STORAGE_PATH", "CTXO_INDEX_PATH", "CTXO_GIT_ENABLED"):
        monkeypatch.delenv(key)
    settings = Settings.from_yaml(Path("/nonexistent/config.yaml"))
    assert settings.token_threshold == 1000
    assert settings.compression_ratio == 0.7
    assert settings.max_tokens == 8000
    assert settings.priority_weights == DEFAULT_PRIORITY_WEIGHTS
    assert settings.resolved_storage_path == settings.project_root / ".context-optimizer" / "storage"
    assert settings.resolved_index_path == settings.project_root


def test_yaml_sections_are_flattened(tmp_path: Path) -> None:
    config = tmp_path / "config.yaml"
    config.write_text(
        yaml.safe_dump(
            {
                "compression": {"token_threshold": 250, "ratio": 0.5, "importance_tags": ["core"]},
                "packaging": {"max_tokens": 4000, "priority_weights": {"core": 2.0, "test": 0.1}},
                "indexing": {"file_patterns": ["**/*.py"], "watch": True},
            }
        )
    )
    settings = Settings.from_yaml(config)
    assert settings.token_threshold == 250
    assert settings.compression_ratio == 0.5
    assert settings.importance_tags == ["core"]
    assert settings.max_tokens == 4000
    assert settings.priority_weights == {"core": 2.0, "test": 0.1}
    assert settings.file_patterns == ["**/*.py"]
    assert settings.watch_enabled is True


def test_env_overrides_yaml(tmp_path: Path, monkeypatch) -> None:
    config = tmp_path / "config.yaml"
    config.write_text(yaml.safe_dump({"packaging": {"max_files": 5}}))
    monkeypatch.setenv("CTXO_CONFIG", str(config))
    monkeypatch.setenv("CTXO_MAX_FILES", "7")
    monkeypatch.setenv("CTXO_EXCLUDE_PATTERNS", "**/dist/**; **/*.log")
    settings = get_settings()
    assert settings.max_files == 7
    assert settings.exclude_patterns == ["**/dist/**", "**/*.log"]
    assert settings.git_enabled is False
    assert get_settings() is settings
