"""AI provider client: local Ollama or hosted Gemini, with a fallback lane.

Each tenant configures a primary provider and an optional fallback. The
synchronous ``ollama.Client`` runs in ``asyncio.to_thread()``; Gemini is
called over httpx. ``<think>...</think>`` blocks are stripped from every
response before it is returned.

Successful connection tests are cached per tenant, lane and model for 15
minutes so the five-minute connectivity cycle does not pay for a model
round-trip every time.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from types import TracebackType
from typing import Any, Final

import httpx
import ollama

from Gordon_Worker.data.settings_store import SettingsStore
from Gordon_Worker.models.enums import AiProvider
from Gordon_Worker.models.status import ProbeResult
from Gordon_Worker.models.tenant import AiSettings
from Gordon_Worker.utils.exceptions import AiProviderError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

GEMINI_API_BASE_URL: Final[str] = "https://generativelanguage.googleapis.com/v1beta/models"
CONNECTION_CACHE_TTL: Final[float] = 15 * 60
PING_PROMPT: Final[str] = "Reply with the single word: ok"
NUM_CTX: Final[int] = 8192

_THINK_TAG_RE: re.Pattern[str] = re.compile(r"<think>.*?</think>", re.DOTALL)


def strip_think_tags(text: str) -> str:
    """Remove reasoning blocks some local models emit before their answer."""
    return _THINK_TAG_RE.sub("", text).strip()


class AiClient:
    """Tenant-aware text generation with primary/fallback providers.

    Usage::

        ai = AiClient(settings_store)
        probe = await ai.test_connection(tenant_id, use_fallback=False)
        text = await ai.generate(tenant_id, prompt)
    """

    def __init__(
        self,
        settings_store: SettingsStore,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings_store = settings_store
        self._http = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(connect=5.0, read=90.0, write=10.0, pool=5.0),
        )
        self._connection_cache: dict[tuple[int, bool, AiProvider, str], float] = {}

    async def aclose(self) -> None:
        """Close the shared httpx client."""
        await self._http.aclose()

    async def __aenter__(self) -> AiClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def provider_for(self, tenant_id: int, *, use_fallback: bool = False) -> AiProvider:
        """Return the provider configured for a tenant's primary or fallback lane."""
        settings = await self._settings_store.get_settings(tenant_id)
        return settings.ai.provider_for(use_fallback=use_fallback)

    async def test_connection(
        self,
        tenant_id: int,
        *,
        use_fallback: bool,
        force_refresh: bool = False,
    ) -> ProbeResult:
        """Send a trivial prompt to the tenant's provider and report whether it answered.

        Only successful checks are cached, keyed by the lane's provider and
        model. A recovered provider or a settings change is seen on the next
        call.
        """
        settings = await self._settings_store.get_settings(tenant_id)
        if use_fallback and not settings.ai.enable_fallback:
            return ProbeResult(online=False, error="Fallback provider is disabled.")

        provider = settings.ai.provider_for(use_fallback=use_fallback)
        key = (tenant_id, use_fallback, provider, settings.ai.model_for(use_fallback=use_fallback))
        cached_at = self._connection_cache.get(key)
        if not force_refresh and cached_at is not None:
            if time.monotonic() - cached_at < CONNECTION_CACHE_TTL:
                return ProbeResult(online=True)
            del self._connection_cache[key]

        try:
            reply = await self._complete(settings.ai, PING_PROMPT, use_fallback=use_fallback)
        except (AiProviderError, httpx.HTTPError, ollama.ResponseError, ConnectionError) as exc:
            self._connection_cache.pop(key, None)
            return ProbeResult(online=False, error=str(exc) or type(exc).__name__)

        if not reply:
            self._connection_cache.pop(key, None)
            return ProbeResult(online=False, error="Provider returned an empty response.")

        self._connection_cache[key] = time.monotonic()
        return ProbeResult(online=True)

    async def generate(self, tenant_id: int, prompt: str) -> str | None:
        """Generate text with the primary provider, falling back when it fails.

        Returns None when every enabled provider failed or answered with nothing.
        """
        settings = await self._settings_store.get_settings(tenant_id)
        lanes = [False, True] if settings.ai.enable_fallback else [False]

        for use_fallback in lanes:
            provider = settings.ai.provider_for(use_fallback=use_fallback)
            try:
                text = await self._complete(settings.ai, prompt, use_fallback=use_fallback)
            except (AiProviderError, httpx.HTTPError, ollama.ResponseError, ConnectionError) as exc:
                logger.warning(
                    "AI generation via %s failed for tenant %d: %s",
                    provider,
                    tenant_id,
                    exc,
                )
                continue
            if text:
                return text
            logger.warning("AI provider %s returned no text for tenant %d", provider, tenant_id)

        return None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _complete(self, ai: AiSettings, prompt: str, *, use_fallback: bool) -> str:
        provider = ai.provider_for(use_fallback=use_fallback)
        model = ai.model_for(use_fallback=use_fallback)
        if provider == AiProvider.OLLAMA:
            host = ai.fallback_ollama_base_url if use_fallback else ai.ollama_base_url
            raw = await self._ollama_chat(host, model, prompt, timeout=ai.timeout_seconds)
        else:
            api_key = ai.fallback_gemini_api_key if use_fallback else ai.gemini_api_key
            raw = await self._gemini_generate(model, api_key, prompt, timeout=ai.timeout_seconds)
        return strip_think_tags(raw)

    async def _ollama_chat(self, host: str, model: str, prompt: str, *, timeout: float) -> str:
        """Run the synchronous ``ollama.Client.chat`` in a thread with timeout."""
        client = ollama.Client(host=host)

        def _sync_call() -> ollama.ChatResponse:
            return client.chat(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                stream=False,
                options={"num_ctx": NUM_CTX},
            )

        try:
            response = await asyncio.wait_for(asyncio.to_thread(_sync_call), timeout=timeout)
        except TimeoutError as exc:
            msg = f"Ollama model {model} timed out after {timeout:.0f}s"
            raise AiProviderError(msg, service="ollama") from exc
        return response.message.content or ""

    async def _gemini_generate(
        self,
        model: str,
        api_key: str,
        prompt: str,
        *,
        timeout: float,
    ) -> str:
        if not api_key.strip():
            msg = "Gemini API key is not configured"
            raise AiProviderError(msg, service="gemini")

        response = await self._http.post(
            f"{GEMINI_API_BASE_URL}/{model}:generateContent",
            params={"key": api_key},
            json={"contents": [{"parts": [{"text": prompt}]}]},
            timeout=timeout,
        )
        if response.status_code != 200:  # noqa: PLR2004
            msg = f"Gemini request failed with HTTP {response.status_code}"
            raise AiProviderError(msg, service="gemini", http_status=response.status_code)

        body: dict[str, Any] = response.json()
        candidates = body.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(str(part.get("text", "")) for part in parts if isinstance(part, dict))
