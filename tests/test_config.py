"""Tests for configuration loading."""

import pytest

from apply_changes.config import Config


_ENV_KEYS = [
    "APPLY_CHANGES_ROOT", "APPLY_CHANGES_FUZZY", "APPLY_CHANGES_FUZZY_THRESHOLD",
    "APPLY_CHANGES_VERIFY_WRITES", "APPLY_CHANGES_SYNTAX_CHECK",
    "APPLY_CHANGES_LOG_DIR", "APPLY_CHANGES_HISTORY", "APPLY_CHANGES_HISTORY_DIR",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


class TestDefaults:
    def test_defaults(self):
        cfg = Config()
        assert cfg.PROJECT_ROOT == "."
        assert cfg.FUZZY is False
        assert cfg.FUZZY_THRESHOLD == 0.85
        assert cfg.VERIFY_WRITES is True
        assert cfg.SYNTAX_CHECK == "off"
        assert cfg.LOG_DIR == ".apply_changes/logs"
        assert cfg.HISTORY is True
        assert cfg.HISTORY_DIR == ".apply_changes"

    def test_load_without_file(self):
        assert Config.load().FUZZY is False


class TestYaml:
    def test_values_from_yaml(self):
        cfg = Config({"fuzzy": True, "fuzzy_threshold": 0.9, "syntax_check": "warn",
                      "project_root": "/srv/app"})
        assert cfg.FUZZY is True
        assert cfg.FUZZY_THRESHOLD == 0.9
        assert cfg.SYNTAX_CHECK == "warn"
        assert cfg.PROJECT_ROOT == "/srv/app"

    def test_load_from_cwd(self, tmp_path):
        (tmp_path / ".apply_changes.yaml").write_text(
            "fuzzy: true\nverify_writes: false\n", encoding="utf-8")
        cfg = Config.load()
        assert cfg.FUZZY is True
        assert cfg.VERIFY_WRITES is False

    def test_load_explicit_path(self, tmp_path):
        path = tmp_path / "custom.yml"
        path.write_text("history: no\n", encoding="utf-8")
        assert Config.load(str(path)).HISTORY is False

    def test_missing_explicit_path_uses_defaults(self, tmp_path):
        cfg = Config.load(str(tmp_path / "absent.yaml"))
        assert cfg.HISTORY is True

    def test_invalid_yaml_uses_defaults(self, tmp_path):
        (tmp_path / ".apply_changes.yaml").write_text("fuzzy: [unclosed\n", encoding="utf-8")
        assert Config.load().FUZZY is False


class TestEnvironment:
    def test_env_overrides_yaml(self, monkeypatch):
        monkeypatch.setenv("APPLY_CHANGES_FUZZY", "yes")
        monkeypatch.setenv("APPLY_CHANGES_FUZZY_THRESHOLD", "0.95")
        cfg = Config({"fuzzy": False, "fuzzy_threshold": 0.7})
        assert cfg.FUZZY is True
        assert cfg.FUZZY_THRESHOLD == 0.95

    def test_invalid_values_fall_back(self, monkeypatch):
        monkeypatch.setenv("APPLY_CHANGES_FUZZY_THRESHOLD", "high")
        monkeypatch.setenv("APPLY_CHANGES_SYNTAX_CHECK", "sometimes")
        cfg = Config()
        assert cfg.FUZZY_THRESHOLD == 0.85
        assert cfg.SYNTAX_CHECK == "off"

    def test_out_of_range_threshold_falls_back(self):
        assert Config({"fuzzy_threshold": 3}).FUZZY_THRESHOLD == 0.85

    def test_history_dir(self, monkeypatch):
        monkeypatch.setenv("APPLY_CHANGES_HISTORY_DIR", "/tmp/history")
        assert Config().HISTORY_DIR == "/tmp/history"
