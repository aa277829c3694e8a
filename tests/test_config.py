import pytest

from recommender.config import load_settings


def test_defaults(monkeypatch):
    for name in ("AGENT_BACKEND", "AGENT_ID", "KNOWLEDGE_BASE_ID", "UPLOAD_STATUS_CLEAR_SECONDS", "KNOWLEDGE_ENABLED"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.agent_backend == "gemini"
    assert settings.agent_id == "product-recommendation-agent"
    assert settings.knowledge_base_id == "product-catalog"
    assert settings.upload_status_clear_seconds == 5.0
    assert settings.knowledge_enabled is True
    assert (settings.prompts_dir / "recommendation_agent.txt").exists()


def test_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("AGENT_BACKEND", "HTTP")
    monkeypatch.setenv("AGENT_URL", "http://agent.test")
    monkeypatch.setenv("KNOWLEDGE_DIR", str(tmp_path))
    monkeypatch.setenv("KNOWLEDGE_ENABLED", "0")
    monkeypatch.setenv("MAX_SESSIONS", "3")

    settings = load_settings()

    assert settings.agent_backend == "http"
    assert settings.agent_url == "http://agent.test"
    assert settings.knowledge_dir == tmp_path
    assert settings.knowledge_enabled is False
    assert settings.max_sessions == 3


def test_invalid_values_raise(monkeypatch):
    monkeypatch.setenv("AGENT_BACKEND", "carrier-pigeon")
    with pytest.raises(ValueError):
        load_settings()

    monkeypatch.setenv("AGENT_BACKEND", "gemini")
    monkeypatch.setenv("MAX_SESSIONS", "many")
    with pytest.raises(ValueError):
        load_settings()
