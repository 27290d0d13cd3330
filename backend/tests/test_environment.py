import pytest

from core.environment import get_env_bool, get_env_float, get_env_int, get_env_list, load_environment
from services.error_types import ConfigurationError
from services.plan_config import PlanParseConfig


def test_load_environment_later_file_wins(tmp_path, monkeypatch):
    monkeypatch.delenv("PLAN_TEST_SETTING", raising=False)
    (tmp_path / ".env").write_text("PLAN_TEST_SETTING=base\n")
    (tmp_path / ".env.local").write_text("PLAN_TEST_SETTING=local\n")

    loaded = load_environment(tmp_path)

    assert loaded == [".env", ".env.local"]
    assert get_env_list("PLAN_TEST_SETTING") == ["local"]


def test_load_environment_without_files(tmp_path):
    assert load_environment(tmp_path) == []


@pytest.mark.parametrize("raw,expected", [("true", True), ("ON", True), ("0", False), ("maybe", True), ("", True)])
def test_get_env_bool(monkeypatch, raw, expected):
    monkeypatch.setenv("PLAN_FLAG", raw)
    assert get_env_bool("PLAN_FLAG", default=True) is expected


def test_numeric_lookups_fall_back_on_invalid(monkeypatch):
    monkeypatch.setenv("PLAN_INT", "8")
    monkeypatch.setenv("PLAN_FLOAT", "not-a-number")

    assert get_env_int("PLAN_INT", 4) == 8
    assert get_env_float("PLAN_FLOAT", 60.0) == 60.0
    assert get_env_int("PLAN_MISSING", 3) == 3


def test_get_env_list(monkeypatch):
    monkeypatch.setenv("PLAN_ORIGINS", " http://a.test , ,http://b.test")

    assert get_env_list("PLAN_ORIGINS") == ["http://a.test", "http://b.test"]
    assert get_env_list("PLAN_UNSET", default=["x"]) == ["x"]


def test_config_reads_environment(monkeypatch):
    monkeypatch.setenv("MAX_CONCURRENT_SHEETS", "2")
    monkeypatch.setenv("MAX_FILE_SIZE_MB", "5")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    config = PlanParseConfig()

    assert config.max_concurrent_sheets == 2
    assert config.max_file_size_bytes == 5 * 1024 * 1024
    config.validate()


@pytest.mark.parametrize("overrides", [
    {"openai_api_key": ""},
    {"openai_api_key": "sk-test", "max_concurrent_sheets": 0},
    {"openai_api_key": "sk-test", "scanned_ratio_threshold": 0.9},
])
def test_config_validation(overrides):
    with pytest.raises(ConfigurationError):
        PlanParseConfig(**overrides).validate()
