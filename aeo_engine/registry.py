# aeo_engine/registry.py
"""
Rule registry and selector.

Holds rule instances constructed once at startup, picks the ones that apply to
a page, and evaluates them with bounded concurrency. `evaluate_all` never
raises for a rule's sake: every selected rule yields exactly one outcome,
either a RuleResult or a RuleFailure.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Iterable

from aeo_engine.errors import DuplicateRuleError, UnknownRuleError
from aeo_engine.models import (
    ApplicationLevel,
    Category,
    EvaluationStatus,
    PageContent,
    PageTypeLike,
    RuleFailure,
    RuleOutcome,
)
from aeo_engine.rules.base import BaseRule

log = logging.getLogger(__name__)


class RuleRegistry:
    def __init__(
        self,
        rules: Iterable[BaseRule] = (),
        *,
        max_concurrency: int = 4,
        deadline: float | None = None,
        disabled: Iterable[str] = (),
    ):
        self._rules: dict[str, BaseRule] = {}
        self._enabled: set[str] = set()
        self.max_concurrency = max(1, int(max_concurrency))
        self.deadline = deadline
        for rule in rules:
            self.register(rule)
        for rule_id in disabled:
            if rule_id in self._rules:
                self.set_enabled(rule_id, False)
            else:
                log.warning("Ignoring unknown disabled rule id %r", rule_id)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self):
        return iter(self._rules.values())

    def register(self, rule: BaseRule) -> None:
        if rule.id in self._rules:
            raise DuplicateRuleError(rule.id)
        self._rules[rule.id] = rule
        self._enabled.add(rule.id)
        log.debug("Registered rule %s (%s, weight %.1f)", rule.id, rule.category.value, rule.weight)

    def get(self, rule_id: str) -> BaseRule:
        try:
            return self._rules[rule_id]
        except KeyError:
            raise UnknownRuleError(rule_id) from None

    def set_enabled(self, rule_id: str, enabled: bool) -> None:
        self.get(rule_id)
        if enabled:
            self._enabled.add(rule_id)
        else:
            self._enabled.discard(rule_id)
        log.info("Rule %s %s", rule_id, "enabled" if enabled else "disabled")

    def is_enabled(self, rule_id: str) -> bool:
        return rule_id in self._enabled

    def all_rules(self) -> list[BaseRule]:
        return list(self._rules.values())

    def select_applicable(
        self, page_type: PageTypeLike, *, level: ApplicationLevel | None = None
    ) -> list[BaseRule]:
        """Enabled rules applicable to `page_type`, in registration order."""
        return [
            rule
            for rule in self._rules.values()
            if rule.id in self._enabled
            and (level is None or rule.application_level == level)
            and rule.is_applicable_to_page_type(page_type)
        ]

    def page_rules(self, page_type: PageTypeLike) -> list[BaseRule]:
        return self.select_applicable(page_type, level=ApplicationLevel.PAGE)

    def domain_rules(self) -> list[BaseRule]:
        return [r for r in self._rules.values() if r.is_domain_level and r.id in self._enabled]

    def rules_by_category(self, category: Category) -> list[BaseRule]:
        return [r for r in self._rules.values() if r.category == category]

    def summary(self) -> dict[str, object]:
        by_category: dict[str, int] = {}
        for rule in self._rules.values():
            by_category[rule.category.value] = by_category.get(rule.category.value, 0) + 1
        return {
            "total": len(self._rules),
            "enabled": len(self._enabled),
            "by_category": by_category,
        }

    async def _run_one(
        self, rule: BaseRule, url: str, content: PageContent, semaphore: asyncio.Semaphore
    ) -> RuleOutcome:
        rule_log = rule.logger(url)
        async with semaphore:
            started = time.perf_counter()
            rule_log.debug("running")
            try:
                result = await rule.evaluate(url, content)
            except Exception as e:
                rule_log.error("failed: %s", e, exc_info=True)
                return RuleFailure(
                    rule_id=rule.id,
                    rule_name=rule.name,
                    category=rule.category,
                    weight=rule.weight,
                    error=str(e) or type(e).__name__,
                    error_type=type(e).__name__,
                )
            rule_log.debug("succeeded with score %d in %.3fs", result.score, time.perf_counter() - started)
            return result

    async def evaluate_all(
        self,
        url: str,
        content: PageContent,
        *,
        level: ApplicationLevel | None = None,
    ) -> list[RuleOutcome]:
        """
        Evaluate every applicable rule and return outcomes in selection order.

        With a deadline set, rules still running when it passes are cancelled
        and reported as RuleFailure(status=TIMED_OUT); finished results are kept.
        """
        rules = self.select_applicable(content.page_type, level=level)
        log.info("Evaluating %d rules for %s", len(rules), url)
        semaphore = asyncio.Semaphore(self.max_concurrency)
        tasks = [asyncio.ensure_future(self._run_one(r, url, content, semaphore)) for r in rules]
        if not tasks:
            return []

        if self.deadline is None:
            outcomes: list[RuleOutcome] = list(await asyncio.gather(*tasks))
        else:
            _, pending = await asyncio.wait(tasks, timeout=self.deadline)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            outcomes = []
            for rule, task in zip(rules, tasks):
                if task in pending:
                    rule.logger(url).warning("timed out after %.1fs", self.deadline)
                    outcomes.append(
                        RuleFailure(
                            rule_id=rule.id,
                            rule_name=rule.name,
                            category=rule.category,
                            weight=rule.weight,
                            error=f"Evaluation exceeded {self.deadline}s deadline",
                            error_type="TimeoutError",
                            status=EvaluationStatus.TIMED_OUT,
                        )
                    )
                else:
                    outcomes.append(task.result())

        failed = sum(1 for o in outcomes if isinstance(o, RuleFailure))
        log.info("Finished %d rules for %s (%d unavailable)", len(outcomes), url, failed)
        return outcomes
