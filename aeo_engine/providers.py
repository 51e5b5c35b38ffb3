# aeo_engine/providers.py
"""
LLM client interface and the ordered provider fallback resolver.

Concrete vendor SDKs live outside this package; callers inject any object
that satisfies `LLMClient`. The resolver keeps no state between calls: each
evaluation walks the candidate list from the top.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Generic, Protocol, Sequence, TypeVar

from pydantic import BaseModel

from aeo_engine.errors import ProviderExhaustedError

log = logging.getLogger(__name__)

DEFAULT_LLM_TIMEOUT = 60.0

T = TypeVar("T", bound=BaseModel)


class LLMClient(Protocol):
    def is_provider_available(self, provider: str) -> bool:
        ...

    async def get_structured_output(
        self,
        provider: str,
        prompt: str,
        schema: type[BaseModel],
        *,
        model: str,
        temperature: float,
        max_tokens: int,
        web_access: bool = False,
    ) -> Any:
        ...


@dataclass(frozen=True)
class ProviderCandidate:
    provider: str
    model: str
    temperature: float = 0.3
    max_tokens: int = 1000
    web_access: bool = False
    # Seconds one structured-output call may take before the next candidate is tried.
    timeout: float = DEFAULT_LLM_TIMEOUT

    @property
    def label(self) -> str:
        return f"{self.provider}/{self.model}"


@dataclass
class FallbackOutcome(Generic[T]):
    value: T
    candidate: ProviderCandidate
    attempts: list[str] = field(default_factory=list)


def _coerce(raw: Any, schema: type[T]) -> T:
    if isinstance(raw, schema):
        return raw
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    return schema.model_validate(raw)


async def resolve_with_fallback(
    client: LLMClient,
    candidates: Sequence[ProviderCandidate],
    prompt: str,
    schema: type[T],
    *,
    logger: logging.Logger | logging.LoggerAdapter | None = None,
    timeout: float | None = None,
) -> FallbackOutcome[T]:
    """
    Try candidates in order; return the first structured result.

    Unavailable providers are skipped and are not counted as attempts.
    A provider that raises, or returns data that fails schema validation,
    counts as an attempt and the next candidate is tried. So does a call that
    outlives `timeout` (or the candidate's own timeout when none is given).
    """
    logger = logger or log
    attempts: list[str] = []
    last_error: BaseException | None = None

    for candidate in candidates:
        if not client.is_provider_available(candidate.provider):
            logger.debug("Provider %s not available, skipping", candidate.provider)
            continue
        attempts.append(candidate.label)
        limit = candidate.timeout if timeout is None else timeout
        try:
            raw = await asyncio.wait_for(
                client.get_structured_output(
                    candidate.provider,
                    prompt,
                    schema,
                    model=candidate.model,
                    temperature=candidate.temperature,
                    max_tokens=candidate.max_tokens,
                    web_access=candidate.web_access,
                ),
                timeout=limit,
            )
            value = _coerce(raw, schema)
        except asyncio.TimeoutError:
            logger.warning("Provider %s timed out after %.1fs", candidate.label, limit)
            last_error = asyncio.TimeoutError(f"timed out after {limit:g}s")
            continue
        except Exception as e:
            logger.warning("Provider %s failed: %s", candidate.label, e)
            last_error = e
            continue
        logger.info("Structured output obtained from %s", candidate.label)
        return FallbackOutcome(value=value, candidate=candidate, attempts=attempts)

    if last_error is not None:
        raise ProviderExhaustedError(
            f"All LLM providers failed; last attempted {attempts[-1]}: {last_error}",
            attempts=attempts,
            last_error=last_error,
        ) from last_error
    raise ProviderExhaustedError(
        "No LLM provider available among: " + ", ".join(c.label for c in candidates),
        attempts=attempts,
    )
