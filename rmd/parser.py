from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional

from common.errors import ParseError
from rmd.chunk_options import FENCE_RE, parse_header, split_eol
from rmd.document_models import CodeSegment, Document, ProseSegment, Segment


def _is_closing(line: str, char: str, width: int) -> bool:
    content = split_eol(line)[0].strip()
    return len(content) >= width and content == char * len(content)


def parse_document(text: str, source: Optional[Path | str] = None) -> Document:
    """
    Split R Markdown text into prose and code chunk segments.
    Joining the segments back together gives the input text unchanged.
    """
    # split after "\n" only; other Unicode line breaks stay inside their line
    lines = [l for l in re.split(r"(?<=\n)", text) if l]
    segments: List[Segment] = []
    prose: List[str] = []

    def flush_prose() -> None:
        if prose:
            segments.append(ProseSegment(text="".join(prose)))
            prose.clear()

    i = 0
    while i < len(lines):
        line = lines[i]
        line_no = i + 1
        try:
            header = parse_header(line, line_no=line_no)
        except ParseError as e:
            flush_prose()
            raise e.with_context(source=source, position=len(segments)) from None

        if header is not None:
            flush_prose()
            body: List[str] = []
            i += 1
            while i < len(lines) and not _is_closing(lines[i], "`", len(header.fence)):
                body.append(lines[i])
                i += 1
            if i == len(lines):
                raise ParseError(
                    f"code chunk opened with {header.fence} is never closed",
                    source=source,
                    position=len(segments),
                    line_no=line_no,
                )
            segments.append(CodeSegment(header=header, lines=body, closing=lines[i]))
            i += 1
            continue

        fence = FENCE_RE.match(split_eol(line)[0])
        if fence is not None:
            # plain markdown fence: contents are prose, never chunks
            char, width = fence.group("fence")[0], len(fence.group("fence"))
            prose.append(line)
            i += 1
            while i < len(lines) and not _is_closing(lines[i], char, width):
                prose.append(lines[i])
                i += 1
            if i == len(lines):
                flush_prose()
                raise ParseError(
                    "fenced block is never closed",
                    source=source,
                    position=len(segments) - 1,
                    line_no=line_no,
                )
            prose.append(lines[i])
            i += 1
            continue

        prose.append(line)
        i += 1

    flush_prose()
    return Document(segments=segments, source=Path(source) if source is not None else None)


def read_document(path: Path) -> Document:
    """Read an .Rmd file without newline translation so it round-trips exactly."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            text = f.read()
    except UnicodeDecodeError as e:
        raise ParseError(f"not valid UTF-8 text ({e.reason} at byte {e.start})", source=path) from e
    return parse_document(text, source=path)
