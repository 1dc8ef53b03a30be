"""Chat-completions client for an OpenAI-compatible endpoint."""
import os
import logging

from utils.http_client import HTTPClient, APIError

logger = logging.getLogger("microgrid.ai.client")


class LLMUnavailableError(Exception):
    """Raised when no API key is configured or the response has no content."""


class LLMClient:
    """
    Thin wrapper over ``POST /chat/completions``.

    The API key comes from the environment variable named in
    ``config.ai.api_key_env`` (``OPENAI_API_KEY`` by default). Calls use a
    hard timeout and no retries so a slow model never stalls a request.
    """

    def __init__(self, config: dict, http=None):
        ai_config = config.get("ai", {})
        self.model = ai_config.get("model", "gpt-4o")
        self.base_url = ai_config.get("base_url", "https://api.openai.com/v1")
        self.timeout = ai_config.get("timeout", 10)
        self.api_key = os.environ.get(ai_config.get("api_key_env", "OPENAI_API_KEY"), "")
        self._http = http

    def is_configured(self) -> bool:
        return bool(self.api_key) or self._http is not None

    @property
    def http(self):
        if self._http is None:
            self._http = HTTPClient(
                self.base_url,
                timeout=self.timeout,
                max_retries=0,
                headers={"Authorization": f"Bearer {self.api_key}"},
                source="llm",
            )
        return self._http

    def complete(self, system: str, user: str, json_mode: bool = False, temperature=None) -> str:
        """Send one system + user exchange and return the reply text."""
        if not self.is_configured():
            raise LLMUnavailableError("No API key configured for the language model")

        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}
        if temperature is not None:
            body["temperature"] = temperature

        data = self.http.post("chat/completions", json=body)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise APIError(f"Malformed completion payload: {e}", source="llm") from e
        if not content:
            raise LLMUnavailableError("Empty completion")
        logger.debug(f"Completion received ({len(content)} chars)")
        return content
