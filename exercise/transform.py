from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Mapping, Optional, Sequence

from common.errors import ParseError
from common.logger import get_logger
from rmd.chunk_options import is_true, render_header
from rmd.document_models import CodeSegment, Document, Segment

log = get_logger(__name__)


def strip_statements(lines: Iterable[str], marker: str) -> List[str]:
    """
    Keep the lines that are comments (after leading whitespace) and drop the rest.
    Kept lines are returned untouched and in order.
    """
    return [line for line in lines if line.lstrip().startswith(marker)]


def comment_marker(
    language: str, markers: Mapping[str, str], source=None, position: Optional[int] = None
) -> str:
    marker = markers.get(language) or markers.get(language.lower())
    if not marker:
        raise ParseError(
            f"no comment marker configured for chunk language {language!r}",
            source=source,
            position=position,
        )
    return marker


def _flagged(segment: CodeSegment, flags: Sequence[str]) -> bool:
    options = segment.options
    return any(is_true(options.get(f)) for f in flags)


def transform_document(
    document: Document,
    markers: Mapping[str, str],
    replace_flags: Sequence[str] = ("live",),
    remove_flags: Sequence[str] = (),
) -> Document:
    """
    Build the exercise version of a document.
    - chunks flagged with a replace flag keep only their comment lines, and
      the flag options are dropped from the header
    - chunks flagged with a remove flag are left out entirely
    - everything else is copied as-is
    The result owns its segments; the input document is never shared or changed.
    """
    out: List[Segment] = []
    replaced = removed = 0

    for position, seg in enumerate(document.segments):
        if not isinstance(seg, CodeSegment):
            out.append(replace(seg))
            continue

        if remove_flags and _flagged(seg, remove_flags):
            removed += 1
            continue

        if not _flagged(seg, replace_flags):
            out.append(replace(seg, lines=list(seg.lines)))
            continue

        marker = comment_marker(seg.language, markers, document.source, position)
        header = render_header(seg.header, drop=replace_flags)
        out.append(
            replace(seg, header=header, lines=strip_statements(seg.lines, marker))
        )
        replaced += 1

    log.debug(
        "%s: %d chunk(s) stripped, %d removed",
        document.source or "<text>",
        replaced,
        removed,
    )
    return Document(segments=out, source=document.source)
