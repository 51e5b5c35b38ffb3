# Exception taxonomy for the rule engine.

from __future__ import annotations


class AEOEngineError(Exception):
    """Base class for every error raised by aeo_engine."""


class DuplicateRuleError(AEOEngineError, ValueError):
    def __init__(self, rule_id: str):
        super().__init__(f"A rule with id '{rule_id}' is already registered")
        self.rule_id = rule_id


class UnknownRuleError(AEOEngineError, KeyError):
    def __init__(self, rule_id: str):
        super().__init__(f"Rule {rule_id} not found")
        self.rule_id = rule_id


class MissingCollaboratorError(AEOEngineError):
    """A rule was evaluated without a collaborator it cannot work without."""


class ProviderExhaustedError(AEOEngineError):
    """
    Every candidate in a provider fallback chain was skipped or failed.

    `attempts` lists the "provider/model" labels that were actually called,
    in order. The message names the last one.
    """

    def __init__(
        self,
        message: str,
        attempts: list[str] | None = None,
        last_error: BaseException | None = None,
    ):
        super().__init__(message)
        self.attempts = list(attempts or [])
        self.last_error = last_error


class ExternalLookupError(AEOEngineError):
    """A third-party read API call failed (network, status, or payload)."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Lookup failed for {url}: {reason}")
        self.url = url
        self.reason = reason
