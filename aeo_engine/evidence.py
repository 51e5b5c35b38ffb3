# Constructor functions for EvidenceItem, one per evidence type.

from __future__ import annotations

from typing import Any, Iterable

from aeo_engine.models import EvidenceItem, EvidenceType


def _make(
    kind: EvidenceType,
    topic: str,
    content: str,
    *,
    score: int | None = None,
    max_score: int | None = None,
    target: str | None = None,
    code: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> EvidenceItem:
    return EvidenceItem(
        type=kind,
        topic=topic,
        content=content,
        score=score,
        max_score=max_score,
        target=target,
        code=code,
        metadata=metadata,
    )


def info(topic: str, content: str, **kwargs: Any) -> EvidenceItem:
    return _make(EvidenceType.INFO, topic, content, **kwargs)


def success(topic: str, content: str, **kwargs: Any) -> EvidenceItem:
    return _make(EvidenceType.SUCCESS, topic, content, **kwargs)


def warning(topic: str, content: str, **kwargs: Any) -> EvidenceItem:
    return _make(EvidenceType.WARNING, topic, content, **kwargs)


def error(topic: str, content: str, **kwargs: Any) -> EvidenceItem:
    return _make(EvidenceType.ERROR, topic, content, **kwargs)


def base(content: str, score: int, **kwargs: Any) -> EvidenceItem:
    """Starting points a rule grants before any adjustment."""
    return _make(EvidenceType.BASE, "Base Score", content, score=score, **kwargs)


def heading(content: str) -> EvidenceItem:
    return _make(EvidenceType.HEADING, "", content)


def score(content: str, **kwargs: Any) -> EvidenceItem:
    return _make(EvidenceType.SCORE, "", content, **kwargs)


def format_calculation(breakdown: Iterable[tuple[str, int]], final: int) -> str:
    """
    Render `p1 (component1) + p2 (component2) = final/100`.

    Negative points are written as `- 10 (component)` so the string still
    reads as arithmetic.
    """
    parts: list[str] = []
    for i, (component, points) in enumerate(breakdown):
        if i == 0:
            parts.append(f"{points} ({component})")
        elif points < 0:
            parts.append(f"- {abs(points)} ({component})")
        else:
            parts.append(f"+ {points} ({component})")
    if not parts:
        parts.append("0 (no components)")
    return f"{' '.join(parts)} = {final}/100"


def score_calculation(breakdown: list[tuple[str, int]], final: int) -> EvidenceItem:
    """Terminal evidence item; a reviewer can recompute `final` from metadata alone."""
    return _make(
        EvidenceType.SCORE,
        "Score Calculation",
        format_calculation(breakdown, final),
        score=final,
        max_score=100,
        metadata={
            "breakdown": [{"component": c, "points": p} for c, p in breakdown],
        },
    )
