"""Link extraction: turns Markdown text into a list of :class:`LinkReference`.

Extraction happens in two steps.  :func:`tokenize` parses the document into
an ordered list of :class:`Event` objects (inline links, reference uses and
reference definitions).  :func:`extract_links` then folds over those events,
resolving reference-style links against the definitions, and returns the
links in order of first appearance.

Only the subset of Markdown needed to find links is understood.  Fenced and
indented code blocks and inline code spans never produce links, images are
not links, links do not nest, and malformed constructs are skipped rather
than raising.
"""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass
from typing import Callable, List, Set

from deadlinks.models import LinkReference

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------
_FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})")
_LIST_ITEM_RE = re.compile(r"^ {0,3}(?:[-+*]|\d{1,9}[.)])(?:[ \t]|$)")
_DEFINITION_RE = re.compile(
    r"""^\ {0,3}\[(?P<label>(?:[^\]\\]|\\.)+)\]:[ \t]*
        (?:<(?P<angle>[^<>\n]*)>|(?P<bare>\S+))
        (?:[ \t]+(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|\((?P<pq>[^)]*)\)))?
        [ \t]*$""",
    re.VERBOSE,
)
_AUTOLINK_RE = re.compile(r"<([A-Za-z][A-Za-z0-9+.\-]{1,31}:[^\s<>]*)>")
_ESCAPE_RE = re.compile(r"\\([!-/:-@\[-`{-~])")
_TITLE_CLOSERS = {'"': '"', "'": "'", "(": ")"}

LINK = "link"
REFERENCE = "reference"
DEFINITION = "definition"


@dataclass(frozen=True)
class Event:
    """One link-related construct found while parsing a document."""

    kind: str
    line: int
    url: str = ""
    title: str = ""
    label: str = ""


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _unescape(value: str) -> str:
    return _ESCAPE_RE.sub(r"\1", value)


def _normalize_label(label: str) -> str:
    """Reference labels match case-insensitively with collapsed whitespace."""
    return " ".join(label.split()).casefold()


def _indent(line: str) -> int:
    """Width of the leading whitespace, with tab stops every 4 columns."""
    expanded = line.expandtabs(4)
    return len(expanded) - len(expanded.lstrip(" "))


def _split_blocks(text: str) -> tuple[str, List[Event]]:
    """Blank out code blocks and definition lines.

    Fenced and indented code blocks are both blanked.  An indented line only
    opens a code block after a blank line and outside a list, because list
    items continue with indented paragraphs.

    Returns the remaining prose (same line count as *text*, so offsets map
    back to line numbers) together with the definition events.
    """
    prose: List[str] = []
    definitions: List[Event] = []
    fence: str | None = None
    indented = False
    in_list = False
    previous_blank = True

    for number, line in enumerate(text.split("\n"), start=1):
        blank = not line.strip()
        code = True

        if fence is not None:
            closing = _FENCE_RE.match(line)
            if (
                closing
                and closing.group(1)[0] == fence[0]
                and len(closing.group(1)) >= len(fence)
                and not line[closing.end():].strip()
            ):
                fence = None
        elif indented and (blank or _indent(line) >= 4):
            pass
        else:
            indented = False
            opening = _FENCE_RE.match(line)
            if opening:
                fence = opening.group(1)
            elif not blank and previous_blank and not in_list and _indent(line) >= 4:
                indented = True
            else:
                code = False
                if _LIST_ITEM_RE.match(line):
                    in_list = True
                elif not blank and previous_blank and _indent(line) == 0:
                    in_list = False

        previous_blank = blank
        if code:
            prose.append("")
            continue

        definition = _DEFINITION_RE.match(line)
        if definition:
            url = definition.group("angle")
            if url is None:
                url = definition.group("bare")
            title = next(
                (t for t in definition.group("dq", "sq", "pq") if t is not None), ""
            )
            definitions.append(
                Event(
                    kind=DEFINITION,
                    line=number,
                    url=_unescape(url),
                    title=_unescape(title),
                    label=_normalize_label(definition.group("label")),
                )
            )
            prose.append("")
            continue

        prose.append(line)

    return "\n".join(prose), definitions


def _skip_code_span(text: str, i: int) -> int:
    """Return the index just past the code span opening at *i*.

    An unmatched backtick run is literal text, so only the run is skipped.
    """
    run_end = i
    while run_end < len(text) and text[run_end] == "`":
        run_end += 1
    run = text[i:run_end]
    search = run_end
    while True:
        found = text.find(run, search)
        if found == -1:
            return run_end
        after = found + len(run)
        if after < len(text) and text[after] == "`":
            # Longer run, not our closer.
            while after < len(text) and text[after] == "`":
                after += 1
            search = after
            continue
        return after


def _match_bracket(text: str, i: int) -> int:
    """Return the index of the ``]`` closing the ``[`` at *i*, or ``-1``.

    Link text never crosses a blank line, which also bounds the scan.
    """
    depth = 0
    j = i
    n = len(text)
    while j < n:
        c = text[j]
        if c == "\\":
            j += 2
            continue
        if c == "`":
            j = _skip_code_span(text, j)
            continue
        if c == "\n" and text.startswith("\n\n", j):
            return -1
        if c == "[":
            depth += 1
        elif c == "]":
            depth -= 1
            if depth == 0:
                return j
        j += 1
    return -1


def _skip_whitespace(text: str, j: int) -> int:
    while j < len(text) and text[j] in " \t\n":
        j += 1
    return j


def _parse_destination(text: str, i: int) -> tuple[str, str, int] | None:
    """Parse ``(dest "title")`` starting at the ``(`` at *i*.

    Returns ``(url, title, end)`` or ``None`` when the construct is malformed.
    """
    n = len(text)
    j = _skip_whitespace(text, i + 1)

    if j < n and text[j] == "<":
        close = text.find(">", j + 1)
        newline = text.find("\n", j + 1)
        if close == -1 or (newline != -1 and newline < close):
            return None
        url = text[j + 1:close]
        j = close + 1
    else:
        start = j
        depth = 0
        while j < n:
            c = text[j]
            if c == "\\" and j + 1 < n:
                j += 2
                continue
            if c in " \t\n":
                break
            if c == "(":
                depth += 1
            elif c == ")":
                if depth == 0:
                    break
                depth -= 1
            j += 1
        if depth != 0:
            return None
        url = text[start:j]

    j = _skip_whitespace(text, j)
    title = ""
    if j < n and text[j] in _TITLE_CLOSERS and url:
        closer = _TITLE_CLOSERS[text[j]]
        k = j + 1
        while k < n and text[k] != closer:
            k += 2 if text[k] == "\\" else 1
        if k >= n:
            return None
        title = text[j + 1:k]
        j = _skip_whitespace(text, k + 1)

    if j >= n or text[j] != ")":
        return None
    return _unescape(url), _unescape(title), j + 1


def _contains_link(label: str, defined: Set[str]) -> bool:
    """Whether link text *label* holds a link of its own.

    Links cannot nest, so the innermost one wins and the outer brackets are
    plain text.  A reference only counts when its label is defined.
    """
    for event in _scan_inline(label, lambda _offset: 0, defined):
        if event.kind == LINK or event.label in defined:
            return True
    return False


def _scan_inline(prose: str, line_of: Callable[[int], int], defined: Set[str]) -> List[Event]:
    """Find inline links, autolinks and reference uses in *prose*."""
    events: List[Event] = []
    i = 0
    n = len(prose)
    while i < n:
        c = prose[i]

        if c == "\\":
            i += 2
            continue

        if c == "`":
            i = _skip_code_span(prose, i)
            continue

        if c == "<":
            auto = _AUTOLINK_RE.match(prose, i)
            if auto:
                events.append(Event(kind=LINK, line=line_of(i), url=auto.group(1)))
                i = auto.end()
                continue
            i += 1
            continue

        is_image = c == "!" and i + 1 < n and prose[i + 1] == "["
        if c != "[" and not is_image:
            i += 1
            continue

        start = i + 1 if is_image else i
        close = _match_bracket(prose, start)
        if close == -1:
            i = start + 1
            continue

        label = prose[start + 1:close]
        after = close + 1

        nested = not is_image and ("[" in label or "<" in label)
        if nested and _contains_link(label, defined):
            i = start + 1
            continue

        if after < n and prose[after] == "(":
            parsed = _parse_destination(prose, after)
            if parsed is not None:
                url, title, end = parsed
                if not is_image:
                    events.append(
                        Event(kind=LINK, line=line_of(start), url=url, title=title)
                    )
                i = end
                continue

        if after < n and prose[after] == "[":
            second = _match_bracket(prose, after)
            if second != -1:
                ref = prose[after + 1:second] or label
                if not is_image:
                    events.append(
                        Event(
                            kind=REFERENCE,
                            line=line_of(start),
                            label=_normalize_label(ref),
                        )
                    )
                i = second + 1
                continue

        # Shortcut reference; keep scanning inside the brackets since the
        # label may hold links of its own when it does not resolve.
        if not is_image and label.strip():
            events.append(
                Event(kind=REFERENCE, line=line_of(start), label=_normalize_label(label))
            )
        i = start + 1

    return events


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def tokenize(text: str) -> List[Event]:
    """Parse *text* into an ordered list of link events.

    Definition events are listed before inline events; the fold in
    :func:`extract_links` does not depend on their relative order.
    """
    prose, events = _split_blocks(text)
    defined = {event.label for event in events}
    newlines = [m.start() for m in re.finditer("\n", prose)]

    def line_of(offset: int) -> int:
        return bisect.bisect_left(newlines, offset) + 1

    events.extend(_scan_inline(prose, line_of, defined))
    return events


def extract_links(text: str, source_path: str) -> List[LinkReference]:
    """Return every link in *text* in order of first appearance.

    Reference-style links resolve against definitions anywhere in the
    document (first definition of a label wins); references without a
    matching definition are plain text and produce nothing.
    """
    events = tokenize(text)

    definitions: dict[str, Event] = {}
    for event in events:
        if event.kind == DEFINITION:
            definitions.setdefault(event.label, event)

    links: List[LinkReference] = []
    for event in events:
        if event.kind == LINK:
            links.append(LinkReference(event.url, event.title, source_path, event.line))
        elif event.kind == REFERENCE:
            target = definitions.get(event.label)
            if target is not None:
                links.append(
                    LinkReference(target.url, target.title, source_path, event.line)
                )
    return links
