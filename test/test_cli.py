# Tests for the command line interface using pytest.
import asyncio
import json
from io import StringIO

from aeo_engine.cli import async_main

PAGE_HTML = """
<html><head><title>Anvil Buying Guide for Small Forges</title>
<meta name="description" content="Learn how to pick an anvil.">
</head><body><h1>How to Choose the Right Anvil for Your Forge</h1>
<p>Short page.</p><img src="/a.png"></body></html>
"""


def run_cli(argv):
    out = StringIO()
    code = asyncio.run(async_main(argv, stdout=out))
    return code, out.getvalue()


def _isolate(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "pyproject.toml").write_text("[tool.aeo_engine.cache]\nenabled = false\n", encoding="utf-8")


def test_rules_lists_the_battery(monkeypatch, tmp_path):
    _isolate(monkeypatch, tmp_path)
    code, out = run_cli(["rules", "--page-type", "homepage"])
    assert code == 0
    assert "https_security" in out
    assert "in_depth_guides" in out
    summary = json.loads(out.strip().splitlines()[-1])
    assert summary["total"] == 10
    assert summary["by_category"]["AUTHORITY"] == 2


def test_evaluate_page_only_writes_json(monkeypatch, tmp_path):
    """Evaluating a saved page writes a JSON report without network access."""
    _isolate(monkeypatch, tmp_path)
    (tmp_path / "page.html").write_text(PAGE_HTML, encoding="utf-8")
    code, out = run_cli(
        [
            "evaluate",
            "https://acme.com/anvils",
            "--html-file",
            "page.html",
            "--page-type",
            "blog_post_article",
            "--page-only",
            "--json",
            "out/report.json",
        ]
    )
    assert code == 0
    assert "Overall score:" in out
    assert "--- Analysis Unavailable ---" in out
    report = json.loads((tmp_path / "out" / "report.json").read_text(encoding="utf-8"))
    result_ids = {r["rule_id"] for r in report["results"]}
    assert "wikipedia_presence" not in result_ids
    assert {"main_heading", "image_alt", "meta_description"} <= result_ids
    # The guide rule scores short pages without an LLM; the definitional rule cannot.
    assert "in_depth_guides" in result_ids
    assert [f["rule_id"] for f in report["unavailable_rules"]] == ["definitional_content"]
    assert report["page_type"] == "blog_post_article"


def test_evaluate_missing_file(monkeypatch, tmp_path):
    """A missing input file exits non-zero."""
    _isolate(monkeypatch, tmp_path)
    code, _ = run_cli(["evaluate", "https://acme.com", "--html-file", "nope.html"])
    assert code == 1


def test_cache_stats_and_inspect(monkeypatch, tmp_path):
    _isolate(monkeypatch, tmp_path)
    code, out = run_cli(["cache", "--dir", str(tmp_path / "c"), "stats"])
    assert code == 0
    assert json.loads(out)["items"] == 0
    code, out = run_cli(["cache", "--dir", str(tmp_path / "c"), "inspect", "https://x.org/?a=1"])
    assert code == 2
    assert "Cache miss" in out
