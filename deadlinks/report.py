"""Report schema and persistence.

The report is the persisted contract of a run, so its shape is fixed by the
pydantic models below: every key is always present and every list is in
discovery order.  Nothing time-dependent is stored, which keeps two runs
over an unchanged tree byte-identical.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from deadlinks.logging import get_logger
from deadlinks.models import LinkVerdict, VerdictKind
from deadlinks.pipeline import CheckResult

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class LinkEntry(BaseModel):
    url: str
    title: str
    path: str
    line: int = 0
    status: Optional[int] = None
    reason: Optional[str] = None


class Summary(BaseModel):
    documents: int = 0
    links: int = 0
    alive: int = 0
    dead_internal: int = 0
    dead_external: int = 0
    should_be_relative: int = 0
    ignored: int = 0


class DeadLinkReport(BaseModel):
    root: str
    visited: List[LinkEntry] = Field(default_factory=list)
    dead_internal: List[LinkEntry] = Field(default_factory=list)
    dead_external: List[LinkEntry] = Field(default_factory=list)
    should_be_relative: List[LinkEntry] = Field(default_factory=list)
    alive: Optional[List[LinkEntry]] = None
    summary: Summary = Field(default_factory=Summary)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _entry(verdict: LinkVerdict) -> LinkEntry:
    reference = verdict.reference
    return LinkEntry(
        url=reference.url,
        title=reference.title,
        path=reference.source_path,
        line=reference.line,
        status=verdict.status_code,
        reason=verdict.reason,
    )


def _entries(verdicts: List[LinkVerdict], kind: VerdictKind) -> List[LinkEntry]:
    return [_entry(v) for v in verdicts if v.kind is kind]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_report(result: CheckResult, include_alive: bool = False) -> DeadLinkReport:
    """Aggregate the verdicts of *result* into a :class:`DeadLinkReport`."""
    verdicts = result.verdicts
    counts = {kind: 0 for kind in VerdictKind}
    for verdict in verdicts:
        counts[verdict.kind] += 1

    return DeadLinkReport(
        root=str(result.root),
        visited=[_entry(v) for v in result.visited],
        dead_internal=_entries(verdicts, VerdictKind.DEAD_INTERNAL),
        dead_external=_entries(verdicts, VerdictKind.DEAD_EXTERNAL),
        should_be_relative=_entries(verdicts, VerdictKind.SHOULD_BE_RELATIVE),
        alive=_entries(verdicts, VerdictKind.ALIVE) if include_alive else None,
        summary=Summary(
            documents=result.documents,
            links=len(verdicts),
            alive=counts[VerdictKind.ALIVE],
            dead_internal=counts[VerdictKind.DEAD_INTERNAL],
            dead_external=counts[VerdictKind.DEAD_EXTERNAL],
            should_be_relative=counts[VerdictKind.SHOULD_BE_RELATIVE],
            ignored=counts[VerdictKind.IGNORED],
        ),
    )


def write_report(report: DeadLinkReport, path: str | Path) -> Path:
    """Write *report* to *path* as indented JSON, replacing any old report.

    The file is written to a temporary sibling first and moved into place,
    so readers never see a half-written report.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = report.model_dump_json(indent=2) + "\n"

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.info("Report written to %s", path)
    return path


def load_report(path: str | Path) -> DeadLinkReport:
    """Read a report previously written by :func:`write_report`."""
    return DeadLinkReport.model_validate_json(Path(path).read_text(encoding="utf-8"))
