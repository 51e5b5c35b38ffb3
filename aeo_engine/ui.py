# aeo_engine/ui.py
# Presentation-only utilities for CLI output.
from __future__ import annotations

from typing import IO, Iterable

from aeo_engine.models import AggregatedReport, PageTypeLike, RuleFailure
from aeo_engine.rules.base import BaseRule


def _writeln(text: str = "", *, file: IO[str]) -> None:
    file.write(text + "\n")


def render_evaluate_header(url: str, *, file: IO[str]) -> None:
    _writeln(f"Evaluating AEO rules for: {url}...", file=file)


def render_score_line(report: AggregatedReport, *, file: IO[str]) -> None:
    _writeln(
        f"\nOverall score: {report.overall_score}/100 "
        f"(category-weighted: {report.category_weighted_score}/100)",
        file=file,
    )


def render_categories_section(report: AggregatedReport, *, file: IO[str]) -> None:
    if not report.categories:
        return
    _writeln("\n--- Categories ---", file=file)
    for name, sub in report.categories.items():
        _writeln(
            f"- {name:<15} {sub.score:>3}/100  "
            f"passed {sub.passed_rules}/{sub.applied_rules}"
            + (f"  unavailable {sub.unavailable_rules}" if sub.unavailable_rules else ""),
            file=file,
        )


def render_results_section(report: AggregatedReport, *, file: IO[str]) -> None:
    if not report.results:
        return
    _writeln("\n--- Rules ---", file=file)
    for r in report.results:
        mark = "PASS" if r.passed else "FAIL"
        _writeln(f"- [{mark}] {r.rule_id:<22} {r.score:>3}/100  (weight {r.weight})", file=file)


def render_issues_section(report: AggregatedReport, *, file: IO[str]) -> None:
    if not report.issues:
        return
    _writeln(f"\n--- Issues ({report.total_issues}, {report.critical_issues} critical) ---", file=file)
    for issue in report.issues:
        _writeln(f"- [{issue.severity.value.upper():<8}] {issue.description}", file=file)


def render_unavailable_section(failures: Iterable[RuleFailure], *, file: IO[str]) -> None:
    items = list(failures)
    if not items:
        return
    _writeln("\n--- Analysis Unavailable ---", file=file)
    for f in items:
        _writeln(f"- {f.rule_id} ({f.status.value}): {f.error}", file=file)


def render_rules_table(rules: Iterable[BaseRule], page_type: PageTypeLike, *, file: IO[str]) -> None:
    _writeln(f"{'ID':<22} {'CATEGORY':<15} {'IMPACT':>6} {'WEIGHT':>6} {'LEVEL':<7} APPLIES", file=file)
    for rule in rules:
        applies = "yes" if rule.is_applicable_to_page_type(page_type) else "no"
        _writeln(
            f"{rule.id:<22} {rule.category.value:<15} {rule.impact_score:>6} "
            f"{rule.weight:>6} {rule.application_level.value:<7} {applies}",
            file=file,
        )
