# src/laila/api/app.py
import base64
import json, os, time, logging, uuid
import laila.core.config as cfgmod
from laila.core.errors import CompletionError, ConfigurationError, ValidationError
from laila.core.models import ChatRequest, CompletionOptions
from laila.core.pipeline import ChatPipeline

try:
    # Optional: used only for local dev
    from fastapi import FastAPI, Request  # pyright: ignore[reportMissingImports]
    from fastapi.responses import JSONResponse  # pyright: ignore[reportMissingImports]
except ImportError:
    FastAPI = None   # type: ignore
    Request = None   # type: ignore
    JSONResponse = None  # type: ignore

# ------------------ Config ------------------
config = cfgmod.AppConfig.from_env()

logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO), format="%(levelname)s %(name)s %(message)s")
logger = logging.getLogger("laila.api")

# ------------------ Globals ------------------
_pipeline = None
_init_error = None


def _resolve_api_key(cfg: cfgmod.AppConfig) -> str:
    if cfg.openai_api_key:
        return cfg.openai_api_key
    if cfg.openai_api_key_secret_arn:
        from botocore.exceptions import BotoCoreError, ClientError
        from laila.core.secrets import get_secret
        try:
            return get_secret(cfg.openai_api_key_secret_arn, key="OPENAI_API_KEY")
        except (BotoCoreError, ClientError) as e:
            raise ConfigurationError(f"could not read OPENAI_API_KEY_SECRET_ARN: {type(e).__name__}") from e
    return ""


def _make_embedder(cfg: cfgmod.AppConfig, api_key: str):
    if cfg.embed_provider == "local":
        from laila.adapters.embeddings_local import LocalEmbedder
        return LocalEmbedder(cfg.embed_model, max_chars=cfg.embed_max_chars)
    from laila.adapters.embeddings_openai import OpenAIEmbedder
    return OpenAIEmbedder(api_key, model=cfg.embed_model, base_url=cfg.openai_base_url,
                          max_chars=cfg.embed_max_chars, timeout=cfg.store_timeout_sec)


def _make_store(cfg: cfgmod.AppConfig):
    if not cfg.memory_enabled:
        if cfg.memory_backend == "supabase":
            logger.warning("[store] MEMORY_BACKEND=supabase but SUPABASE_URL/SUPABASE_SERVICE_KEY missing; memory disabled")
        return None
    if cfg.memory_backend == "local":
        from laila.adapters.store_numpy import NumpyStore
        return NumpyStore(cfg.memory_dir)
    from laila.adapters.store_supabase import SupabaseStore
    return SupabaseStore(cfg.supabase_url, cfg.supabase_service_key, table=cfg.memory_table,
                         match_function=cfg.match_function, audit_table=cfg.audit_table,
                         timeout=cfg.store_timeout_sec)


def build_pipeline(cfg: cfgmod.AppConfig) -> ChatPipeline:
    """Wire clients from one config object. Raises ConfigurationError on missing credentials."""
    api_key = _resolve_api_key(cfg) if cfg.needs_api_key else ""
    if cfg.needs_api_key and not api_key:
        raise ConfigurationError("OPENAI_API_KEY (or OPENAI_API_KEY_SECRET_ARN) is required")

    if cfg.llm_provider == "offline":
        from laila.adapters.llm_offline import OfflineCompletion
        llm = OfflineCompletion()
    elif cfg.llm_provider == "openai":
        from laila.adapters.llm_openai import OpenAICompletion
        llm = OpenAICompletion(api_key, base_url=cfg.openai_base_url, api=cfg.llm_api, timeout=cfg.http_timeout_sec)
    else:
        raise ConfigurationError(f"unsupported LLM_PROVIDER={cfg.llm_provider!r}")

    store = _make_store(cfg)
    embedder = _make_embedder(cfg, api_key) if store is not None else None
    logger.info("[diag] llm=%s api=%s model=%s memory=%s embed=%s",
                cfg.llm_provider, cfg.llm_api, cfg.llm_model_id,
                cfg.memory_backend if store is not None else "off",
                cfg.embed_provider if embedder is not None else "off")

    return ChatPipeline(
        llm=llm,
        options=CompletionOptions(model=cfg.llm_model_id, max_tokens=cfg.max_tokens, temperature=cfg.temperature),
        embedder=embedder,
        store=store,
        persona_template=cfg.persona_prompt,
        top_k=cfg.top_k,
        snippet_chars=cfg.snippet_chars,
        tz=cfg.timezone,
        audit_enabled=cfg.audit_enabled,
    )


def _init_pipeline():
    """Build once per warm container; never crash Lambda init. Errors are stashed for /health and /chat."""
    global _pipeline, _init_error
    if _pipeline is not None:
        return
    try:
        _pipeline = build_pipeline(config)
        _init_error = None
    except ConfigurationError as e:
        logger.error("[api] configuration error: %s", e)
        _init_error = e
    except Exception as e:
        logger.exception("[api] init failed")
        _init_error = ConfigurationError(f"initialization failed: {type(e).__name__}")


def reset():
    """Drop the cached pipeline (tests, config reloads)."""
    global _pipeline, _init_error
    _pipeline = None
    _init_error = None


# ------------------ HTTP glue ------------------
def _json(status: int, body: dict, headers: dict | None = None, _json_mod=json):
    h = {"Content-Type": "application/json"}
    if headers:
        h.update(headers)
    return {"statusCode": status, "headers": h, "body": _json_mod.dumps(body, ensure_ascii=False)}


def _parse_body(body_str: str) -> dict:
    try:
        payload = json.loads(body_str) if body_str else {}
    except ValueError:
        payload = {}
    return payload if isinstance(payload, dict) else {}


def _health() -> dict:
    _init_pipeline()
    resp = {
        "ok": True,
        "ready": _pipeline is not None,
        "env": config.app_env,
        "llm_provider": config.llm_provider,
        "memory_backend": config.memory_backend if config.memory_enabled else "off",
    }
    if _init_error is not None:
        resp["error"] = str(_init_error)
    return resp


def handle_chat(payload: dict, request_id: str = "-") -> tuple[int, dict]:
    """POST body -> (status, body). Validation happens before any client is built."""
    req = ChatRequest.from_payload(payload, default_mode=config.default_mode)
    if not req.message.strip():
        return 400, {"error": "message is required"}

    _init_pipeline()
    if _pipeline is None:
        return 500, {"error": "configuration", "detail": str(_init_error or "not initialized")}

    t0 = time.perf_counter()
    try:
        result = _pipeline.run(req)
    except ValidationError as e:
        return e.status, {"error": str(e)}
    except CompletionError as e:
        logger.error("[chat] request_id=%s completion failed status=%s", request_id, e.status)
        return 500, {"error": "completion_failed", "detail": e.detail, "reply": None,
                     "retrieved_count": 0, "memory_saved": False}

    logger.info("[telemetry] %s", json.dumps({
        "request_id": request_id,
        "latency_ms": round((time.perf_counter() - t0) * 1000.0, 1),
        "mode": req.mode,
        "retrieved_count": result.retrieved_count,
        "memory_saved": result.memory_saved,
        "reply_found": result.reply is not None,
        "shape": result.shape,
        "degraded": {k: s.reason for k, s in result.steps.items() if not s.ok and not s.reason.startswith("skipped:")},
        "phase_ms": result.phase_ms,
    }))
    return 200, result.to_body()


def dispatch(method: str, path: str, body_str: str) -> tuple[int, dict, dict]:
    """Route one request: GET /health, POST anything else; everything else is 405."""
    request_id = str(uuid.uuid4())
    headers = {"x-request-id": request_id}
    method = (method or "GET").upper()

    if method == "GET" and path.rstrip("/").endswith("/health"):
        return 200, _health(), headers
    if method != "POST":
        return 405, {"error": "method not allowed"}, {**headers, "Allow": "POST"}

    status, body = handle_chat(_parse_body(body_str), request_id)
    return status, body, headers


def handler(event, context):
    """
    API Gateway HTTP API (v2) event router.
      GET  /health
      POST /api/chat   (JSON: {"message": "...", "mode": "reflective", "persist": true})
    """
    try:
        path = event.get("rawPath") or event.get("path") or "/"
        method = (event.get("requestContext", {}).get("http", {}).get("method") or event.get("httpMethod") or "GET").upper()

        body_str = event.get("body") or ""
        if event.get("isBase64Encoded"):
            try:
                body_str = base64.b64decode(body_str).decode("utf-8", "ignore")
            except (ValueError, TypeError):
                body_str = ""

        status, body, headers = dispatch(method, path, body_str)
        return _json(status, body, headers)

    except Exception:
        logger.exception("[api] unhandled error")
        return _json(500, {"error": "Internal Server Error"})


# ------------------ Local FastAPI (dev) ------------------
IS_LAMBDA = bool(os.getenv("AWS_LAMBDA_FUNCTION_NAME"))
app = FastAPI(title="Laila") if (FastAPI is not None and not IS_LAMBDA) else None

if app:
    @app.get("/health")
    async def _health_route():
        status, body, headers = dispatch("GET", "/health", "")
        return JSONResponse(status_code=status, content=body, headers=headers)

    @app.api_route("/api/chat", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
    async def _chat(request: Request):  # pyright: ignore[reportMissingImports]
        raw = (await request.body()).decode("utf-8", "ignore")
        status, body, headers = dispatch(request.method, request.url.path, raw)
        return JSONResponse(status_code=status, content=body, headers=headers)
