"""Dead-link checker for trees of Markdown documents.

Public API::

    from deadlinks import run_check, build_report, write_report
    result = run_check("docs")
    write_report(build_report(result), "dead_links.json")
"""

from deadlinks.pipeline import CheckResult, run_check
from deadlinks.report import build_report, load_report, write_report

__all__ = ["CheckResult", "run_check", "build_report", "load_report", "write_report"]
