#!/usr/bin/env python3
"""
Tests for the TOML configuration layer
"""

from krishi.config import DEFAULT_CONFIG_TOML, KrishiConfig


class TestKrishiConfig:
    """Test suite for KrishiConfig."""

    def test_creates_default_file(self, tmp_path):
        path = tmp_path / "krishi" / "config.toml"
        config = KrishiConfig(str(path))
        assert path.read_text() == DEFAULT_CONFIG_TOML
        assert config.get("assistant", "language") == "english"
        assert config.get("tts", "provider") == "edge"
        assert config.get("stt", "missing", 7) == 7

    def test_backend_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("KRISHI_BACKEND_MODEL", raising=False)
        monkeypatch.delenv("KRISHI_BACKEND_ENDPOINT", raising=False)
        backend = KrishiConfig(str(tmp_path / "config.toml")).get_backend_config()
        assert backend["model"] == "gemini-pro"
        assert backend["endpoint"].endswith("/models/gemini-pro:generateContent")
        assert backend["api_key"] is None
        assert backend["timeout"] == 30.0
        assert backend["top_k"] == 40
        assert backend["max_output_tokens"] == 200

    def test_environment_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "env-key")
        monkeypatch.setenv("KRISHI_BACKEND_MODEL", "gemini-1.5-flash")
        monkeypatch.delenv("KRISHI_BACKEND_ENDPOINT", raising=False)
        backend = KrishiConfig(str(tmp_path / "config.toml")).get_backend_config()
        assert backend["api_key"] == "env-key"
        assert "/models/gemini-1.5-flash:generateContent" in backend["endpoint"]

    def test_file_values(self, tmp_path, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        path = tmp_path / "config.toml"
        path.write_text('[backend]\napi_key = "file-key"\ntimeout = 5\n\n[assistant]\nlanguage = "hindi"\n')
        config = KrishiConfig(str(path))
        assert config.get_backend_config()["api_key"] == "file-key"
        assert config.get_backend_config()["timeout"] == 5.0
        assert config.get("assistant", "language") == "hindi"

    def test_invalid_toml_falls_back_to_defaults(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("[backend\nbroken")
        config = KrishiConfig(str(path))
        assert config.get("backend", "model") == "gemini-pro"

    def test_reload(self, tmp_path):
        path = tmp_path / "config.toml"
        config = KrishiConfig(str(path))
        path.write_text('[tts]\nprovider = "local"\n')
        config.reload()
        assert config.get("tts", "provider") == "local"
        assert config.get_section("stt") == {}

    def test_global_instance(self, tmp_path):
        from krishi.config import get_config, init_config

        config = init_config(str(tmp_path / "config.toml"))
        assert get_config() is config
        assert get_config(str(tmp_path / "other.toml")) is config
