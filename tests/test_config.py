import pytest

from laila.api.app import build_pipeline
from laila.core.config import AppConfig
from laila.core.errors import ConfigurationError


def test_defaults():
    cfg = AppConfig.from_env({})
    assert cfg.top_k == 4
    assert cfg.default_mode == "reflective"
    assert cfg.llm_api == "responses"
    assert 600 <= cfg.max_tokens <= 800
    assert 0.3 <= cfg.temperature <= 0.7
    assert cfg.memory_enabled is False
    assert cfg.needs_api_key is True


def test_temperature_is_clamped():
    assert AppConfig.from_env({"TEMPERATURE": "1.8"}).temperature == 1.0
    assert AppConfig.from_env({"TEMPERATURE": "-2"}).temperature == 0.0


def test_supabase_without_connection_details_is_disabled():
    cfg = AppConfig.from_env({"MEMORY_BACKEND": "supabase", "SUPABASE_URL": "https://x.supabase.co"})
    assert cfg.memory_enabled is False
    p = build_pipeline(AppConfig.from_env({"OPENAI_API_KEY": "sk", "MEMORY_BACKEND": "supabase"}))
    assert p.store is None and p.embedder is None


def test_supabase_backend_wiring():
    p = build_pipeline(AppConfig.from_env({
        "OPENAI_API_KEY": "sk",
        "MEMORY_BACKEND": "supabase",
        "SUPABASE_URL": "https://x.supabase.co",
        "SUPABASE_SERVICE_KEY": "svc",
        "MEMORY_TABLE": "laila_memories",
        "TOP_K": "6",
    }))
    assert type(p.store).__name__ == "SupabaseStore"
    assert p.store.table == "laila_memories"
    assert type(p.embedder).__name__ == "OpenAIEmbedder"
    assert p.top_k == 6


def test_missing_api_key_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        build_pipeline(AppConfig.from_env({}))
    with pytest.raises(ConfigurationError):
        build_pipeline(AppConfig.from_env({"OPENAI_API_KEY": "sk", "LLM_PROVIDER": "mystery"}))


def test_offline_mode_needs_no_key(tmp_path):
    cfg = AppConfig.from_env({"LLM_PROVIDER": "offline", "MEMORY_BACKEND": "local",
                              "EMBED_PROVIDER": "openai", "MEMORY_DIR": str(tmp_path)})
    # openai embeddings still need the key even when replies are offline
    assert cfg.needs_api_key is True
    p = build_pipeline(AppConfig.from_env({"LLM_PROVIDER": "offline"}))
    assert type(p.llm).__name__ == "OfflineCompletion"
    assert p.store is None


def test_secret_arn_is_resolved(monkeypatch):
    import laila.core.secrets as secrets

    class FakeSM:
        def get_secret_value(self, SecretId):
            assert SecretId == "arn:aws:secretsmanager:sa-east-1:1:secret:laila"
            return {"SecretString": '{"OPENAI_API_KEY": "sk-from-secret"}'}

    monkeypatch.setattr(secrets, "_sm", FakeSM())
    monkeypatch.setattr(secrets, "_cache", {})
    p = build_pipeline(AppConfig.from_env({"OPENAI_API_KEY_SECRET_ARN": "arn:aws:secretsmanager:sa-east-1:1:secret:laila"}))
    assert p.llm.session.headers["Authorization"] == "Bearer sk-from-secret"


def test_secret_lookup_failure_is_a_configuration_error(monkeypatch):
    from botocore.exceptions import ClientError
    import laila.core.secrets as secrets

    class DeniedSM:
        def get_secret_value(self, SecretId):
            raise ClientError({"Error": {"Code": "AccessDeniedException", "Message": "no"}}, "GetSecretValue")

    monkeypatch.setattr(secrets, "_sm", DeniedSM())
    monkeypatch.setattr(secrets, "_cache", {})
    with pytest.raises(ConfigurationError, match="ClientError"):
        build_pipeline(AppConfig.from_env({"OPENAI_API_KEY_SECRET_ARN": "arn:aws:secretsmanager:sa-east-1:1:secret:x"}))


def test_snippet_chars_reaches_the_pipeline():
    p = build_pipeline(AppConfig.from_env({"OPENAI_API_KEY": "sk", "SNIPPET_CHARS": "120", "APP_ENV": "prod"}))
    assert p.snippet_chars == 120
