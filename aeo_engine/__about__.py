"""Metadata for aeo_engine."""

__all__ = [
    "__title__",
    "__version__",
    "__description__",
    "__credits__",
    "__requires_python__",
]

__title__ = "aeo_engine"
__version__ = "0.1.0"
__description__ = (
    "Answer-engine-optimization rule engine: scores a web page with heuristic, "
    "lookup and LLM-backed rules and aggregates a weighted report."
)
__credits__ = [{"name": "AEO Engine contributors"}]
__requires_python__ = ">=3.9"
