# example.py
# A small example demonstrating how to use the aeo_engine library
# to score a page and print the weighted report.

import asyncio
import logging

from aeo_engine import PageContent, PageType, evaluate_page
from aeo_engine.config import load_config
from aeo_engine.models import ApplicationLevel

# You can enable logging to see each rule start, finish and fail.
logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

TARGET_URL = "https://example.com/guides/what-is-answer-engine-optimization"

HTML = """
<html>
  <head>
    <title>What Is Answer Engine Optimization? A Practical Guide</title>
    <meta name="description" content="Learn what answer engine optimization is, how AI assistants pick sources, and the steps that get your pages cited in generated answers today.">
    <script type="application/ld+json">
      {"@context": "https://schema.org", "@type": "Article", "headline": "What is AEO?"}
    </script>
  </head>
  <body>
    <h1>Answer Engine Optimization Explained for Marketers</h1>
    <h2>What is answer engine optimization?</h2>
    <p>Answer engine optimization is the practice of shaping content so AI assistants quote it.</p>
    <h2>How do assistants choose sources?</h2>
    <p>They favor pages with clear structure, direct definitions and trustworthy signals.</p>
    <img src="/img/flow.png" alt="Diagram of an assistant choosing a cited source">
  </body>
</html>
"""


async def main():
    content = PageContent(
        url=TARGET_URL,
        html=HTML,
        page_type=PageType.WHAT_IS_X_DEFINITIONAL_PAGE,
    )
    config = load_config()
    # Page-level rules only, so the example runs offline.
    report = await evaluate_page(content, config=config, level=ApplicationLevel.PAGE)

    print(f"\nOverall score: {report.overall_score}/100")
    for name, sub in report.categories.items():
        print(f"  {name:<12} {sub.score:>3}/100 ({sub.passed_rules}/{sub.applied_rules} passed)")

    for result in report.results:
        print(f"\n[{result.rule_id}] {result.score}/100")
        # The last evidence item reconstructs the score from its components.
        print(f"  {result.evidence[-1].content}")

    if report.unavailable_rules:
        print("\nUnavailable (no LLM client configured):")
        for failure in report.unavailable_rules:
            print(f"  - {failure.rule_id}: {failure.error}")


if __name__ == "__main__":
    asyncio.run(main())
