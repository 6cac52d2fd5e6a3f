# src/laila/adapters/llm_openai.py
import logging
from typing import Any, Dict

import requests

from laila.core.errors import CompletionError, ConfigurationError
from laila.core.models import ComposedPrompt, CompletionOptions

logger = logging.getLogger("laila.adapters.llm")


class OpenAICompletion:
    """
    Calls either the "responses" endpoint (default) or legacy chat completions.
    Returns the raw JSON payload; reply extraction happens elsewhere.
    """

    def __init__(self, api_key: str, base_url: str = "https://api.openai.com/v1",
                 api: str = "responses", timeout: float = 20.0, session: requests.Session | None = None):
        if not api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set")
        if api not in ("responses", "chat"):
            raise ConfigurationError(f"unsupported LLM_API={api!r} (expected 'responses' or 'chat')")
        self.api = api
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        })

    def _body(self, prompt: ComposedPrompt, options: CompletionOptions) -> tuple[str, Dict[str, Any]]:
        messages = prompt.as_messages()
        if self.api == "chat":
            return f"{self.base_url}/chat/completions", {
                "model": options.model,
                "messages": messages,
                "max_tokens": options.max_tokens,
                "temperature": options.temperature,
            }
        return f"{self.base_url}/responses", {
            "model": options.model,
            "input": messages,
            "max_output_tokens": options.max_tokens,
            "temperature": options.temperature,
        }

    def complete(self, prompt: ComposedPrompt, options: CompletionOptions) -> Dict[str, Any]:
        url, body = self._body(prompt, options)
        logger.info("[llm] POST %s model=%s", url.rsplit("/", 1)[-1], options.model)
        try:
            resp = self.session.post(url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise CompletionError(f"request failed: {type(e).__name__}") from e

        if resp.status_code >= 400:
            # provider error bodies carry a useful message but never our prompt
            raise CompletionError(f"provider returned {resp.status_code}: {resp.text[:300]}", status=resp.status_code)
        try:
            out = resp.json()
        except ValueError as e:
            raise CompletionError("provider returned a non-JSON body", status=resp.status_code) from e
        if not isinstance(out, dict):
            raise CompletionError("provider returned an unexpected JSON document", status=resp.status_code)
        return out
