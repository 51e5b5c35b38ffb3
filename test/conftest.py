# Shared fixtures: a scripted LLM client and score recomputation from evidence.
from __future__ import annotations

from typing import Any

import pytest


class FakeLLM:
    """
    Scripted LLM client. `responses` maps "provider/model" to either the raw
    structured output or an exception instance to raise.
    """

    def __init__(self, responses: dict[str, Any] | None = None, available: set[str] | None = None):
        self.responses = responses or {}
        self.available = available
        self.calls: list[str] = []

    def is_provider_available(self, provider: str) -> bool:
        return self.available is None or provider in self.available

    async def get_structured_output(
        self, provider, prompt, schema, *, model, temperature, max_tokens, web_access=False
    ):
        label = f"{provider}/{model}"
        self.calls.append(label)
        response = self.responses.get(label, RuntimeError(f"{label} unavailable"))
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fake_llm():
    return FakeLLM


def score_from_calculation(result) -> int:
    """Recompute a score from the terminal score-calculation evidence item."""
    calc = [e for e in result.evidence if e.topic == "Score Calculation"]
    assert len(calc) == 1
    return sum(item["points"] for item in calc[0].metadata["breakdown"])


@pytest.fixture
def recompute():
    return score_from_calculation
