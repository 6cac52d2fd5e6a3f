# src/laila/core/config.py
import os
from dataclasses import dataclass

# Only try to load .env locally; in Lambda, env vars are injected by SAM
if os.environ.get("APP_ENV", "local") == "local":
    try:
        from dotenv import load_dotenv
        load_dotenv()
    except ImportError:
        # python-dotenv not installed in Lambda package, that's fine
        pass

_TRUTHY = {"true", "1", "yes", "on"}


def _flag(env, name: str, default: str = "false") -> bool:
    return (env.get(name, default) or "").strip().lower() in _TRUTHY


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


@dataclass(frozen=True)
class AppConfig:
    # Environment
    app_env: str = "local"
    log_level: str = "INFO"

    # Completion provider
    llm_provider: str = "openai"         # openai | offline
    llm_api: str = "responses"           # responses | chat
    llm_model_id: str = "gpt-4o-mini"
    max_tokens: int = 700
    temperature: float = 0.6
    openai_api_key: str = ""
    openai_api_key_secret_arn: str = ""
    openai_base_url: str = "https://api.openai.com/v1"

    # Embeddings
    embed_provider: str = "openai"       # openai | local
    embed_model: str = "text-embedding-3-small"
    embed_max_chars: int = 8000

    # Memory store
    memory_backend: str = ""             # supabase | local | "" (disabled)
    supabase_url: str = ""
    supabase_service_key: str = ""
    memory_table: str = "memories"
    match_function: str = "match_memories"
    audit_table: str = "conversations"
    audit_enabled: bool = True
    memory_dir: str = "/tmp/laila_memory"
    top_k: int = 4
    snippet_chars: int = 800

    # Persona
    default_mode: str = "reflective"
    timezone: str = "America/Sao_Paulo"
    persona_prompt: str = ""

    # Timeouts (seconds)
    http_timeout_sec: float = 20.0
    store_timeout_sec: float = 8.0

    @classmethod
    def from_env(cls, env=None) -> "AppConfig":
        """Read every knob once; clients receive the resulting object."""
        env = os.environ if env is None else env
        return cls(
            app_env=env.get("APP_ENV", "local"),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            llm_provider=env.get("LLM_PROVIDER", "openai").strip().lower(),
            llm_api=env.get("LLM_API", "responses").strip().lower(),
            llm_model_id=env.get("LLM_MODEL_ID", "gpt-4o-mini").strip(),
            max_tokens=int(env.get("MAX_TOKENS", "700")),
            temperature=_clamp(float(env.get("TEMPERATURE", "0.6")), 0.0, 1.0),
            openai_api_key=env.get("OPENAI_API_KEY", "").strip(),
            openai_api_key_secret_arn=env.get("OPENAI_API_KEY_SECRET_ARN", "").strip(),
            openai_base_url=env.get("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/"),
            embed_provider=env.get("EMBED_PROVIDER", "openai").strip().lower(),
            embed_model=env.get("EMBED_MODEL", "text-embedding-3-small").strip(),
            embed_max_chars=int(env.get("EMBED_MAX_CHARS", "8000")),
            memory_backend=env.get("MEMORY_BACKEND", "").strip().lower(),
            supabase_url=env.get("SUPABASE_URL", "").rstrip("/"),
            supabase_service_key=env.get("SUPABASE_SERVICE_KEY", "").strip(),
            memory_table=env.get("MEMORY_TABLE", "memories"),
            match_function=env.get("MATCH_FUNCTION", "match_memories"),
            audit_table=env.get("AUDIT_TABLE", "conversations"),
            audit_enabled=_flag(env, "AUDIT_ENABLED", "true"),
            memory_dir=env.get("MEMORY_DIR", "/tmp/laila_memory"),
            top_k=int(env.get("TOP_K", "4")),
            snippet_chars=int(env.get("SNIPPET_CHARS", "800")),
            default_mode=env.get("DEFAULT_MODE", "reflective").strip() or "reflective",
            timezone=env.get("TIMEZONE", "America/Sao_Paulo"),
            persona_prompt=env.get("PERSONA_PROMPT", ""),
            http_timeout_sec=float(env.get("HTTP_TIMEOUT_SEC", "20")),
            store_timeout_sec=float(env.get("STORE_TIMEOUT_SEC", "8")),
        )

    @property
    def memory_enabled(self) -> bool:
        if self.memory_backend == "supabase":
            return bool(self.supabase_url and self.supabase_service_key)
        return self.memory_backend == "local"

    @property
    def needs_api_key(self) -> bool:
        return self.llm_provider != "offline" or (
            self.memory_enabled and self.embed_provider == "openai"
        )
