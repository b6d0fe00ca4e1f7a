"""Unit tests for Settings and the YAML config loader."""

from __future__ import annotations

from src.config.loader import DEFAULT_CONFIG, _deep_merge, load_config
from src.config.settings import Settings


class TestDeepMerge:
    def test_nested_merge(self) -> None:
        base = {"retrieval": {"limit": 5}}
        _deep_merge(base, {"retrieval": {"num_candidates_factor": 10}})
        assert base == {"retrieval": {"limit": 5, "num_candidates_factor": 10}}

    def test_scalar_override(self) -> None:
        base = {"a": {"b": 1}}
        _deep_merge(base, {"a": 2})
        assert base == {"a": 2}

    def test_does_not_alias_override_dicts(self) -> None:
        overrides = {"x": {"y": 1}}
        base: dict = {}
        _deep_merge(base, overrides)
        base["x"]["y"] = 2
        assert overrides["x"]["y"] == 1


class TestLoadConfig:
    def test_defaults_when_file_missing(self, tmp_path) -> None:
        config = load_config(str(tmp_path / "missing.yaml"), Settings(_env_file=None))

        assert config["retrieval"] == DEFAULT_CONFIG["retrieval"]
        assert config["handlers"]["ticket"]["history_window"] == 5
        assert config["llm"]["primary_model"] == "gpt-4o-mini"

    def test_yaml_overrides_defaults(self, tmp_path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("retrieval:\n  limit: 8\nhandlers:\n  small_talk:\n    max_tokens: 99\n")

        config = load_config(str(path), Settings(_env_file=None))

        assert config["retrieval"] == {"limit": 8, "num_candidates_factor": 10}
        assert config["handlers"]["small_talk"] == {"temperature": 0.7, "max_tokens": 99}

    def test_defaults_are_not_mutated(self, tmp_path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("retrieval:\n  limit: 1\n")

        load_config(str(path), Settings(_env_file=None))

        assert DEFAULT_CONFIG["retrieval"]["limit"] == 5


class TestSettings:
    def test_integrations_unconfigured_by_default(self) -> None:
        settings = Settings(_env_file=None)
        assert settings.freshdesk_configured() is False
        assert settings.zoho_configured() is False

    def test_env_vars_are_read(self, monkeypatch) -> None:
        monkeypatch.setenv("FRESHDESK_DOMAIN", "acme.freshdesk.com")
        monkeypatch.setenv("FRESHDESK_API_KEY", "secret")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

        settings = Settings(_env_file=None)

        assert settings.freshdesk_configured() is True
        assert settings.get_available_llm_providers() == ["openai"]
