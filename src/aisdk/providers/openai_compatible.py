"""OpenAI-compatible provider - Chat Completions over HTTP.

Works with any endpoint speaking the OpenAI ``/chat/completions`` API:
OpenAI, DeepSeek, Groq, OpenRouter, Mistral, or a local server (vLLM,
llama.cpp, Ollama).

Example:
    model = OpenAICompatible.from_name("deepseek")
    response = await generate_text(model, prompt="Hello")
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional

import httpx
from opentelemetry import trace

from ..errors import ConfigError, ProviderError
from ..language_model.model import LanguageModel
from .conversions import ChatStreamAccumulator, build_chat_request, parse_chat_response

if TYPE_CHECKING:
    from ..config import ProjectConfig
    from ..language_model.options import LanguageModelOptions
    from ..language_model.stream import LanguageModelStreamChunk
    from ..types import LanguageModelResponse

logger = logging.getLogger(__name__)

# Get tracer for LLM operation spans
tracer = trace.get_tracer(__name__)

SSE_DATA_PREFIX = "data:"
SSE_DONE = "[DONE]"


@dataclass
class ProviderSettings:
    """Connection settings for an OpenAI-compatible endpoint.

    Attributes:
        base_url: API root, e.g. https://api.openai.com/v1
        model: Model id sent with every request
        api_key: Bearer token; falls back to the ``api_key_env`` variable
        provider_name: Name used in logs and traces
        timeout_ms: Request timeout
        headers: Extra HTTP headers
        api_key_env: Environment variable holding the key
        temperature: Default when a run leaves temperature unset
        max_output_tokens: Default when a run leaves the limit unset
    """

    base_url: str
    model: str
    api_key: Optional[str] = None
    provider_name: str = "openai-compatible"
    timeout_ms: int = 30000
    headers: dict[str, str] = field(default_factory=dict)
    api_key_env: Optional[str] = None
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.base_url or not self.base_url.strip():
            raise ConfigError("base_url must not be empty")
        if not self.model:
            raise ConfigError("model must not be empty")

    def resolved_api_key(self) -> Optional[str]:
        if self.api_key:
            return self.api_key
        if self.api_key_env:
            return os.getenv(self.api_key_env)
        return None


class OpenAICompatible(LanguageModel):
    """Language model adapter for Chat Completions endpoints."""

    # Pre-configured popular providers
    PRESETS: dict[str, ProviderSettings] = {
        "openai": ProviderSettings(
            base_url="https://api.openai.com/v1",
            model="gpt-4o-mini",
            provider_name="openai",
            api_key_env="OPENAI_API_KEY",
        ),
        "deepseek": ProviderSettings(
            base_url="https://api.deepseek.com/v1",
            model="deepseek-chat",
            provider_name="deepseek",
            api_key_env="DEEPSEEK_API_KEY",
        ),
        "groq": ProviderSettings(
            base_url="https://api.groq.com/openai/v1",
            model="llama-3.3-70b-versatile",
            provider_name="groq",
            api_key_env="GROQ_API_KEY",
        ),
        "openrouter": ProviderSettings(
            base_url="https://openrouter.ai/api/v1",
            model="openai/gpt-4o-mini",
            provider_name="openrouter",
            api_key_env="OPENROUTER_API_KEY",
        ),
        "mistral": ProviderSettings(
            base_url="https://api.mistral.ai/v1",
            model="mistral-small-latest",
            provider_name="mistral",
            api_key_env="MISTRAL_API_KEY",
        ),
        "local": ProviderSettings(
            base_url="http://localhost:8000/v1",
            model="qwen2.5-0.5b-instruct",
            provider_name="local",
        ),
    }

    def __init__(self, settings: ProviderSettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize the adapter.

        Args:
            settings: Endpoint, model and credentials
            transport: Custom httpx transport (tests, proxies)
        """
        self.settings = settings
        self.name = settings.model
        self._transport = transport

    @classmethod
    def from_name(cls, provider_name: str, model: Optional[str] = None) -> OpenAICompatible:
        """Create adapter from a preset name.

        Args:
            provider_name: One of "openai", "deepseek", "groq", "openrouter", "mistral", "local"
            model: Override the preset's model id

        Returns:
            Configured OpenAICompatible instance
        """
        preset = cls.PRESETS.get(provider_name.lower())
        if preset is None:
            raise ValueError(
                f"Unknown provider: {provider_name}. Choose from: {list(cls.PRESETS.keys())}"
            )
        settings = replace(preset, headers=dict(preset.headers))
        if model:
            settings.model = model
        return cls(settings)

    @classmethod
    def from_config(
        cls,
        provider_name: Optional[str],
        project_config: ProjectConfig,
        model: Optional[str] = None,
    ) -> OpenAICompatible:
        """Create adapter from ProjectConfig.

        Loads settings from the aisdk.toml [providers.<provider_name>] table
        (or the [defaults] provider when no name is given). Falls back to
        built-in presets if the table is missing; preset values fill in
        anything the table leaves out.

        Example aisdk.toml:
            [providers.deepseek]
            api_key = "${DEEPSEEK_API_KEY}"
            api_base = "https://api.deepseek.com/v1"
            model = "deepseek-chat"
            timeout_sec = 30
        """
        name = provider_name or project_config.defaults.provider
        if name is None:
            raise ConfigError("No provider given and no [defaults] provider configured")

        defaults = project_config.defaults
        provider_cfg = project_config.provider(name)
        if provider_cfg is None:
            logger.info("Provider '%s' not in aisdk.toml, using built-in preset", name)
            adapter = cls.from_name(name, model)
        else:
            preset = cls.PRESETS.get(name.lower())
            base_url = provider_cfg.api_base or (preset.base_url if preset else "")
            settings = ProviderSettings(
                base_url=base_url,
                model=model or provider_cfg.model or (preset.model if preset else ""),
                api_key=provider_cfg.api_key,
                provider_name=name,
                timeout_ms=provider_cfg.timeout_sec * 1000,
                headers=dict(provider_cfg.headers),
                api_key_env=preset.api_key_env if preset else None,
            )
            logger.info("Loaded provider '%s' from aisdk.toml", name)
            adapter = cls(settings)

        if adapter.settings.temperature is None:
            adapter.settings.temperature = defaults.temperature
        if adapter.settings.max_output_tokens is None:
            adapter.settings.max_output_tokens = defaults.max_output_tokens
        return adapter

    @property
    def url(self) -> str:
        return f"{self.settings.base_url.rstrip('/')}/chat/completions"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        api_key = self.settings.resolved_api_key()
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        headers.update(self.settings.headers)
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.timeout_ms / 1000.0, transport=self._transport)

    def _payload(self, options: LanguageModelOptions, stream: bool) -> dict[str, Any]:
        return build_chat_request(
            self.settings.model,
            options,
            stream=stream,
            default_temperature=self.settings.temperature,
            default_max_tokens=self.settings.max_output_tokens,
        )

    def _span_attributes(self, options: LanguageModelOptions) -> dict[str, Any]:
        return {
            "llm.provider": self.settings.provider_name,
            "llm.base_url": self.settings.base_url,
            "llm.model": self.settings.model,
            "llm.messages.count": len(options.tagged_messages),
            "llm.tools.count": len(options.tool_schemas()),
        }

    async def generate(self, options: LanguageModelOptions) -> LanguageModelResponse:
        """Run one non-streaming round.

        Raises:
            ProviderError: HTTP error status, transport failure or unreadable body
        """
        payload = self._payload(options, stream=False)

        with tracer.start_as_current_span("llm.generate", attributes=self._span_attributes(options)) as span:
            try:
                async with self._client() as client:
                    response = await client.post(self.url, json=payload, headers=self._headers())
                    response.raise_for_status()
                    result = parse_chat_response(response.json())

                span.set_attribute("llm.status", "success")
                span.set_attribute("llm.contents.count", len(result.contents))
                if result.usage is not None:
                    span.set_attribute("llm.usage.prompt_tokens", result.usage.input_tokens or 0)
                    span.set_attribute("llm.usage.completion_tokens", result.usage.output_tokens or 0)
                span.set_status(trace.Status(trace.StatusCode.OK))
                return result

            except httpx.HTTPStatusError as e:
                error_msg = f"HTTP error {e.response.status_code}: {e.response.text}"
                span.set_attribute("llm.status", "error")
                span.set_status(trace.Status(trace.StatusCode.ERROR, error_msg))
                span.record_exception(e)
                raise ProviderError(error_msg, e.response.status_code) from e
            except (httpx.HTTPError, ValueError) as e:
                span.set_attribute("llm.status", "error")
                span.set_status(trace.Status(trace.StatusCode.ERROR, f"LLM generation failed: {e}"))
                span.record_exception(e)
                raise ProviderError(f"LLM generation failed: {e}") from e

    async def stream(self, options: LanguageModelOptions) -> AsyncIterator[LanguageModelStreamChunk]:
        """Open a streaming round.

        The HTTP status is checked before returning, so rejected requests
        raise here; transport failures after that surface while iterating.

        Raises:
            ProviderError: HTTP error status or transport failure
        """
        payload = self._payload(options, stream=True)
        span = tracer.start_span("llm.stream", attributes=self._span_attributes(options))
        client = self._client()
        try:
            request = client.build_request("POST", self.url, json=payload, headers=self._headers())
            response = await client.send(request, stream=True)
            if response.is_error:
                body = (await response.aread()).decode("utf-8", errors="replace")
                await response.aclose()
                error_msg = f"HTTP error {response.status_code}: {body}"
                raise ProviderError(error_msg, response.status_code)
        except (httpx.HTTPError, ProviderError) as e:
            await client.aclose()
            span.set_attribute("llm.status", "error")
            span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            span.record_exception(e)
            span.end()
            if isinstance(e, ProviderError):
                raise
            raise ProviderError(f"LLM streaming failed: {e}") from e

        return self._iter_chunks(client, response, span)

    async def _iter_chunks(
        self,
        client: httpx.AsyncClient,
        response: httpx.Response,
        span: trace.Span,
    ) -> AsyncIterator[LanguageModelStreamChunk]:
        accumulator = ChatStreamAccumulator()
        try:
            async for line in response.aiter_lines():
                line = line.strip()
                if not line.startswith(SSE_DATA_PREFIX):
                    continue
                data = line[len(SSE_DATA_PREFIX) :].strip()
                if data == SSE_DONE:
                    break
                try:
                    payload = json.loads(data)
                except json.JSONDecodeError:
                    logger.warning("Skipping malformed stream line: %s", data[:200])
                    continue
                for chunk in accumulator.feed(payload):
                    yield chunk

            for done in accumulator.finish():
                yield done

            span.set_attribute("llm.status", "success")
            span.set_status(trace.Status(trace.StatusCode.OK))
        except httpx.HTTPError as e:
            span.set_attribute("llm.status", "error")
            span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise ProviderError(f"LLM streaming failed: {e}") from e
        finally:
            await response.aclose()
            await client.aclose()
            span.end()


__all__ = ["OpenAICompatible", "ProviderSettings"]
