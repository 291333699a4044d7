"""Answer synthesis under a fixed grounding contract.

The model may answer only from the supplied context, must say when the
context is insufficient, must end with a ``Sources:`` list of
``<path> (chunk N)`` lines, and should prefer primary source files over
lockfiles and build artifacts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from repolens.rag.llm_client import complete

INSUFFICIENT_CONTEXT_ANSWER = (
    "The indexed repository does not contain enough context to answer this question.\n\n"
    "Sources:\n- (none)"
)

_GROUNDING_RULES = """\
You are a careful code assistant answering questions about a specific repository.

Grounding & sources
- Answer ONLY using the provided Context. Do not rely on outside knowledge.
- If the Context is insufficient or ambiguous, say so briefly and stop.
- Always include a short "Sources:" list of file paths with chunk indices (e.g., src/app.ts (chunk 1)).
- Prefer citing source files over lockfiles or generated artifacts. Avoid citing:
  - package-lock.json, yarn.lock, pnpm-lock.yaml
  - build/, dist/, node_modules/, .git/, *.map
  unless the user explicitly asks about dependencies or build output.

Style & structure
- Be concise and direct. Use plain English.
- When showing code, use fenced code blocks with the correct language.
- Provide conclusions and brief evidence only.
- If multiple files disagree, call that out and pick the best-supported interpretation from the Context.

Formatting
- Final output MUST end with:
  Sources:
  - <path> (chunk N)
  - <path> (chunk M)
"""

_STYLE_LINES = {
    "concise": "Answer length: keep answers concise.",
    "verbose": "Answer length: provide fuller explanations when helpful.",
}


class AnswerSynthesizer(Protocol):
    """Turns a question plus retrieved context into a natural-language answer."""

    def __call__(self, question: str, context: str) -> str: ...


@dataclass
class SynthesisConfig:
    model: str = "openai/gpt-4o-mini"
    temperature: float = 0.2
    style: str = "concise"
    max_tokens: int = 1024
    timeout: float | None = 120.0


def system_prompt(style: str = "concise") -> str:
    """Return the grounding system prompt for *style*."""
    return f"{_GROUNDING_RULES}\n{_STYLE_LINES.get(style, _STYLE_LINES['concise'])}"


def build_messages(question: str, context: str, style: str = "concise") -> list[dict]:
    return [
        {"role": "system", "content": system_prompt(style)},
        {"role": "user", "content": f"Question:\n{question}\n\nContext:\n{context}"},
    ]


class LiteLLMSynthesizer:
    """Default synthesizer backed by :func:`repolens.rag.llm_client.complete`."""

    def __init__(self, config: SynthesisConfig | None = None) -> None:
        self._config = config or SynthesisConfig()

    def __call__(self, question: str, context: str) -> str:
        return complete(
            model=self._config.model,
            messages=build_messages(question, context, self._config.style),
            max_tokens=self._config.max_tokens,
            temperature=self._config.temperature,
            timeout=self._config.timeout,
        ).strip()
