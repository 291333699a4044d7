"""LiteLLM client wrapper: API key validation and error translation.

All embedding and completion calls route through this module. No retries are
made here (``num_retries=0``): transient failures surface immediately as
:class:`Unavailable` so batch semantics stay visible to the caller.

Error mapping:
  missing key / AuthenticationError  → NotConfigured
  BadRequestError                    → InvalidArgument
  anything else from the provider    → Unavailable
"""

from __future__ import annotations

import os
from typing import Any

import litellm

from repolens.errors import InvalidArgument, NotConfigured, RepoLensError, Unavailable

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "voyage": "VOYAGE_API_KEY",
    "groq": "GROQ_API_KEY",
    "together_ai": "TOGETHERAI_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        NotConfigured: If no model is set or the provider key is missing.
    """
    if not model:
        raise NotConfigured("No model configured")
    provider = model.split("/")[0].lower() if "/" in model else "openai"
    env_var = _PROVIDER_ENV.get(provider)

    if env_var is None:
        return

    if not os.getenv(env_var):
        raise NotConfigured(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable.",
            provider=provider,
        )


def embed(model: str, texts: list[str], timeout: float | None = None) -> list[list[float]]:
    """Embed *texts* in one provider call. Returns one vector per input, in order.

    Raises:
        NotConfigured, InvalidArgument, Unavailable: See module docstring.
    """
    if not texts:
        return []
    validate_api_key(model)
    try:
        response = litellm.embedding(
            model=model,
            input=texts,
            timeout=timeout,
            num_retries=0,
        )
    except Exception as exc:
        raise translate_error(exc, "embedding", model) from exc

    data = list(response.data)
    if len(data) != len(texts):
        raise Unavailable(
            f"Embedding provider returned {len(data)} vectors for {len(texts)} inputs",
            model=model,
        )
    return [_vector_of(item) for item in sorted(data, key=_index_of)]


def complete(
    model: str,
    messages: list[dict],
    max_tokens: int = 1024,
    temperature: float = 0.0,
    timeout: float | None = None,
) -> str:
    """Call litellm.completion() once. Returns the first choice's content."""
    validate_api_key(model)
    try:
        response = litellm.completion(
            model=model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
            timeout=timeout,
            num_retries=0,
        )
    except Exception as exc:
        raise translate_error(exc, "completion", model) from exc
    return response.choices[0].message.content or ""


def translate_error(exc: Exception, operation: str, model: str) -> RepoLensError:
    """Map a LiteLLM / transport exception onto the repolens taxonomy."""
    if isinstance(exc, RepoLensError):
        return exc
    if isinstance(exc, litellm.AuthenticationError):
        return NotConfigured(f"{operation} provider rejected credentials: {exc}", model=model)
    if isinstance(exc, litellm.BadRequestError):
        return InvalidArgument(f"{operation} request rejected: {exc}", model=model)
    return Unavailable(f"{operation} provider unavailable: {exc}", model=model)


def _index_of(item: Any) -> int:
    index = item.get("index") if isinstance(item, dict) else getattr(item, "index", None)
    return index if isinstance(index, int) else 0


def _vector_of(item: Any) -> list[float]:
    if isinstance(item, dict):
        return list(item["embedding"])
    return list(item.embedding)
