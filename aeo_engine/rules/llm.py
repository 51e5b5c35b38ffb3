# aeo_engine/rules/llm.py
"""
Shared plumbing for LLM-backed rules.

A subclass declares LLM_PROVIDERS and CONTENT_BUDGET, computes its
deterministic signals first, then calls `analyze()`. There is no heuristic
fallback: a missing client raises MissingCollaboratorError and an exhausted
provider list raises ProviderExhaustedError, and the registry records either
as an unavailable rule.
"""
from __future__ import annotations

from typing import Sequence, TypeVar

from pydantic import BaseModel

from aeo_engine.errors import MissingCollaboratorError
from aeo_engine.models import AIUsage
from aeo_engine.providers import LLMClient, ProviderCandidate, resolve_with_fallback
from aeo_engine.rules.base import BaseRule

T = TypeVar("T", bound=BaseModel)

AUDIT_PROMPT_CHARS = 1000
AUDIT_RESPONSE_CHARS = 1000


def truncate(text: str, budget: int) -> str:
    if len(text) <= budget:
        return text
    return text[:budget] + "\n[... content truncated ...]"


class LLMBackedRule(BaseRule):
    LLM_PROVIDERS: Sequence[ProviderCandidate] = ()
    CONTENT_BUDGET = 20000

    def __init__(
        self, *args, llm_client: LLMClient | None = None, llm_timeout: float | None = None, **kwargs
    ):
        super().__init__(*args, **kwargs)
        self.llm_client = llm_client
        self.llm_timeout = llm_timeout

    async def analyze(self, url: str, prompt: str, schema: type[T]) -> tuple[T, AIUsage]:
        if self.llm_client is None:
            raise MissingCollaboratorError(f"{self.id} requires an LLM client")
        outcome = await resolve_with_fallback(
            self.llm_client,
            self.LLM_PROVIDERS,
            prompt,
            schema,
            logger=self.logger(url),
            timeout=self.llm_timeout,
        )
        usage = AIUsage(
            model_name=outcome.candidate.label,
            prompt=prompt[:AUDIT_PROMPT_CHARS],
            response=outcome.value.model_dump_json()[:AUDIT_RESPONSE_CHARS],
        )
        return outcome.value, usage
