"""Unit tests for Config and related Pydantic models (src.config).

Tests cover:
- GeminiConfig defaults and validation
- DeploymentConfig defaults and validation
- Config defaults, save/load (API key excluded), from_env
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from src.config import Config, DeploymentConfig, GeminiConfig


class TestGeminiConfig:
    @pytest.mark.unit
    def test_defaults(self):
        cfg = GeminiConfig()
        assert cfg.api_key == ""
        assert cfg.url == "https://generativelanguage.googleapis.com"
        assert cfg.timeout == 120
        assert cfg.research_model == "gemini-3-flash-preview"
        assert cfg.explain_model == "gemini-2.5-flash-lite-latest"
        assert cfg.architect_thinking_budget == 32768
        assert cfg.chat_thinking_budget == 2000
        assert cfg.vision_thinking_budget == 4000

    @pytest.mark.unit
    def test_timeout_below_minimum_rejected(self):
        with pytest.raises(ValidationError):
            GeminiConfig(timeout=5)

    @pytest.mark.unit
    def test_api_key_hidden_from_repr(self):
        cfg = GeminiConfig(api_key="secret-key")
        assert "secret-key" not in repr(cfg)


class TestDeploymentConfig:
    @pytest.mark.unit
    def test_defaults(self):
        cfg = DeploymentConfig()
        assert cfg.log_interval == 0.45
        assert cfg.finalize_delay == 1.0

    @pytest.mark.unit
    def test_negative_interval_rejected(self):
        with pytest.raises(ValidationError):
            DeploymentConfig(log_interval=-1)


class TestConfig:
    @pytest.mark.unit
    def test_defaults(self):
        cfg = Config()
        assert cfg.storage_path == Path("./.nexus/local-storage.json")
        assert cfg.projects_key == "nexus_projects"
        assert cfg.system.ai_model == "gemini-3-pro-preview"
        assert cfg.system.max_user_projects == 5

    @pytest.mark.unit
    def test_save_and_load_roundtrip(self, tmp_path: Path):
        cfg = Config(storage_path=tmp_path / "store.json")
        cfg.deployment.log_interval = 0.1
        target = cfg.save(tmp_path / "config.json")
        loaded = Config.load(target)
        assert loaded.storage_path == tmp_path / "store.json"
        assert loaded.deployment.log_interval == 0.1

    @pytest.mark.unit
    def test_save_omits_api_key(self, tmp_path: Path):
        cfg = Config(gemini=GeminiConfig(api_key="secret-key"))
        target = cfg.save(tmp_path / "nested" / "config.json")
        data = json.loads(target.read_text(encoding="utf-8"))
        assert "api_key" not in data["gemini"]
        assert Config.load(target).gemini.api_key == ""

    @pytest.mark.unit
    def test_from_env_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = Config.from_env()
        assert cfg.gemini.api_key == ""
        assert cfg.storage_path == Path("./.nexus/local-storage.json")

    @pytest.mark.unit
    def test_from_env_reads_variables(self):
        env = {
            "NEXUS_API_KEY": "k-1",
            "NEXUS_GEMINI_URL": "http://localhost:9999",
            "NEXUS_GEMINI_TIMEOUT": "30",
            "NEXUS_STORAGE_PATH": "/tmp/nexus.json",
            "NEXUS_DEPLOY_INTERVAL": "0.05",
            "NEXUS_AI_MODEL": "gemini-3-flash-preview",
        }
        with patch.dict(os.environ, env, clear=True):
            cfg = Config.from_env()
        assert cfg.gemini.api_key == "k-1"
        assert cfg.gemini.url == "http://localhost:9999"
        assert cfg.gemini.timeout == 30
        assert cfg.storage_path == Path("/tmp/nexus.json")
        assert cfg.deployment.log_interval == 0.05
        assert cfg.system.ai_model == "gemini-3-flash-preview"

    @pytest.mark.unit
    def test_from_env_falls_back_to_api_key(self):
        with patch.dict(os.environ, {"API_KEY": "legacy"}, clear=True):
            cfg = Config.from_env()
        assert cfg.gemini.api_key == "legacy"
