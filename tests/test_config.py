"""Tests for configuration loading."""

import pytest
from pathlib import Path

from memguard.config import load_config

ENV_KEYS = [
    "MEMGUARD_MEMORY_DIR",
    "MEMGUARD_LOG_LEVEL",
    "MEMGUARD_TOKEN_BUDGET",
    "MEMGUARD_MAX_SELECTED",
    "MEMGUARD_DEBOUNCE_MS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path: Path):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)


class TestConfig:
    def test_defaults(self, tmp_path: Path):
        config = load_config()
        assert config.scoring.critical_bonus == 100
        assert config.scoring.tag_match == 10
        assert config.scoring.high_multiplier == 1.5
        assert config.selection.threshold == 10
        assert config.selection.max_selected == 20
        assert config.compression.token_budget == 2000
        assert config.compression.critical_cap == 20
        assert config.patterns.similarity_threshold == 0.3
        assert config.watch.debounce_ms == 500
        assert config.memory_dir.name == "memory"
        assert config.log_level == "INFO"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("MEMGUARD_TOKEN_BUDGET", "500")
        monkeypatch.setenv("MEMGUARD_MAX_SELECTED", "5")
        monkeypatch.setenv("MEMGUARD_DEBOUNCE_MS", "50")
        monkeypatch.setenv("MEMGUARD_LOG_LEVEL", "DEBUG")

        config = load_config()
        assert config.compression.token_budget == 500
        assert config.selection.max_selected == 5
        assert config.watch.debounce_ms == 50
        assert config.log_level == "DEBUG"

    def test_toml_file(self, tmp_path: Path):
        toml_path = tmp_path / "memguard.toml"
        toml_path.write_text("""
memory_dir = "/tmp/project-memory"
default_language = "go"

[scoring]
tag_match = 20

[compression]
token_budget = 800
head_chars = 40

[patterns]
common_frequency = 8
""")
        config = load_config(toml_path)
        assert config.memory_dir == Path("/tmp/project-memory")
        assert config.default_language == "go"
        assert config.scoring.tag_match == 20
        assert config.scoring.critical_bonus == 100  # untouched keys keep defaults
        assert config.compression.token_budget == 800
        assert config.compression.head_chars == 40
        assert config.patterns.common_frequency == 8

    def test_toml_discovered_in_cwd(self, tmp_path: Path):
        (tmp_path / "memguard.toml").write_text("[selection]\nthreshold = 3\n")
        config = load_config()
        assert config.selection.threshold == 3

    def test_unknown_keys_ignored(self, tmp_path: Path):
        toml_path = tmp_path / "memguard.toml"
        toml_path.write_text("[selection]\nthreshold = 4\nbogus = 1\n")
        config = load_config(toml_path)
        assert config.selection.threshold == 4

    def test_env_overrides_toml(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("MEMGUARD_TOKEN_BUDGET", "300")
        monkeypatch.setenv("MEMGUARD_MEMORY_DIR", str(tmp_path / "env-memory"))

        toml_path = tmp_path / "memguard.toml"
        toml_path.write_text("""
memory_dir = "/tmp/toml-memory"

[compression]
token_budget = 900
""")
        config = load_config(toml_path)
        assert config.compression.token_budget == 300  # env wins
        assert config.memory_dir == tmp_path / "env-memory"
