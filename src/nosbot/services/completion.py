"""Text completion providers backed by Pydantic AI."""

from __future__ import annotations

import time
from typing import Dict, Optional, Protocol, TYPE_CHECKING

from pydantic_ai import Agent
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from rich.console import Console

from nosbot import __version__ as nosbot_version
from nosbot.config.settings import Settings, get_settings

try:  # pragma: no cover - optional anthropic provider
    from pydantic_ai.models.anthropic import AnthropicModel
    from pydantic_ai.providers.anthropic import AnthropicProvider
except ImportError:  # pragma: no cover - optional anthropic provider
    AnthropicModel = None  # type: ignore[assignment]

try:  # pragma: no cover - optional gemini provider
    from pydantic_ai.models.google import GoogleModel
    from pydantic_ai.providers.google import GoogleProvider
except ImportError:  # pragma: no cover - optional gemini provider
    GoogleModel = None  # type: ignore[assignment]

try:  # pragma: no cover - optional instrumentation dependency
    from langfuse import Langfuse
except ImportError:  # pragma: no cover - optional instrumentation dependency
    Langfuse = None  # type: ignore[assignment]

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from langfuse import Langfuse as LangfuseClient
else:  # pragma: no cover - runtime fallback
    LangfuseClient = object  # type: ignore[misc, assignment]

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_ANTHROPIC_MODEL = "claude-3-5-haiku-latest"
DEFAULT_GEMINI_MODEL = "gemini-flash-latest"

SYSTEM_PROMPT = (
    "You are Nosbot, a video curator. You pick videos from a channel's catalog that match a "
    "listener's request and answer only with the JSON object you are asked for."
)


class CompletionProvider(Protocol):
    """Anything able to turn a prompt into raw model text."""

    async def complete(self, prompt: str) -> str:
        """Return the model's raw text response for ``prompt``."""


class PydanticAICompletionProvider:
    """Completion provider wrapping a plain-text :class:`pydantic_ai.Agent`."""

    def __init__(
        self,
        agent: Agent[None, str],
        *,
        model_name: str,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
    ) -> None:
        self._agent = agent
        self._model_name = model_name
        self._settings = settings or get_settings()
        self._console = console or Console()
        self._langfuse: Optional[LangfuseClient] = self._create_langfuse()

    @property
    def model_name(self) -> str:
        """Return the configured model identifier."""

        return self._model_name

    async def complete(self, prompt: str) -> str:
        trace = self._start_trace(prompt)
        start_time = time.perf_counter()
        try:
            result = await self._agent.run(prompt)
        except Exception as exc:
            self._end_trace(trace, {"error": str(exc)}, "error", time.perf_counter() - start_time)
            raise

        output = str(result.output)
        duration_seconds = time.perf_counter() - start_time
        self._end_trace(trace, {"text": output}, "success", duration_seconds)
        self._console.log(f"Completion from {self._model_name} in {duration_seconds:.2f}s ({len(output)} chars)")
        return output

    def _create_langfuse(self) -> Optional[LangfuseClient]:
        """Initialise Langfuse tracing if the dependency and credentials are available."""

        if Langfuse is None:
            return None
        if self._settings.langfuse_public_key is None or self._settings.langfuse_secret_key is None:
            return None

        kwargs: Dict[str, str] = {
            "public_key": self._settings.langfuse_public_key.get_secret_value(),
            "secret_key": self._settings.langfuse_secret_key.get_secret_value(),
        }
        if self._settings.langfuse_host is not None:
            kwargs["host"] = str(self._settings.langfuse_host)

        try:
            return Langfuse(**kwargs)  # type: ignore[call-arg]
        except Exception as exc:  # pragma: no cover - instrumentation failures are non-fatal
            self._console.log(f"LangFuse initialization failed: {exc}")
            return None

    def _start_trace(self, prompt: str) -> Optional[object]:
        if self._langfuse is None:
            return None
        trace_callable = getattr(self._langfuse, "trace", None)
        if not callable(trace_callable):
            return None

        try:
            return trace_callable(
                name="topic-selection",
                input={"prompt": prompt},
                metadata={"model": self._model_name, "version": nosbot_version},
            )
        except Exception as exc:  # pragma: no cover - instrumentation failures are non-fatal
            self._console.log(f"LangFuse trace creation failed: {exc}")
            return None

    def _end_trace(
        self,
        trace: Optional[object],
        output: Dict[str, str],
        status: str,
        duration_seconds: float,
    ) -> None:
        if trace is None:
            return
        end_callable = getattr(trace, "end", None)
        if not callable(end_callable):
            return

        try:
            end_callable(
                output=output,
                status=status,
                metadata={"duration_seconds": duration_seconds, "model": self._model_name},
            )
        except Exception as exc:  # pragma: no cover - instrumentation failures are non-fatal
            self._console.log(f"LangFuse trace completion failed: {exc}")


def create_completion_provider(
    settings: Optional[Settings] = None,
    *,
    console: Optional[Console] = None,
) -> Optional[PydanticAICompletionProvider]:
    """Build a provider from the first configured credential, or ``None`` when there is none.

    Credentials are tried in order: OpenAI, Anthropic, Google Gemini. ``AI_MODEL_NAME``
    overrides the per-vendor default model.
    """

    settings = settings or get_settings()
    console = console or Console()
    override = settings.ai_model_name

    if settings.openai_api_key is not None:
        model_name = override or DEFAULT_OPENAI_MODEL
        provider = OpenAIProvider(api_key=settings.openai_api_key.get_secret_value())
        model = OpenAIChatModel(model_name, provider=provider)
    elif settings.anthropic_api_key is not None and AnthropicModel is not None:
        model_name = override or DEFAULT_ANTHROPIC_MODEL
        provider = AnthropicProvider(api_key=settings.anthropic_api_key.get_secret_value())
        model = AnthropicModel(model_name, provider=provider)
    elif settings.gemini_api_key is not None and GoogleModel is not None:
        model_name = override or DEFAULT_GEMINI_MODEL
        provider = GoogleProvider(api_key=settings.gemini_api_key.get_secret_value())
        model = GoogleModel(model_name, provider=provider)
    else:
        console.log("[yellow]No language model credentials configured; topic selection uses keyword scoring[/yellow]")
        return None

    agent = Agent(model=model, output_type=str, system_prompt=SYSTEM_PROMPT)
    return PydanticAICompletionProvider(agent, model_name=model_name, settings=settings, console=console)


__all__ = ["CompletionProvider", "PydanticAICompletionProvider", "create_completion_provider"]
