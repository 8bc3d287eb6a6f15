"""
Reading and writing knitr chunk headers.

A header looks like ```{r label, key = value, flag}. The option list is split
on top-level commas only; commas inside quotes or brackets belong to the value,
so fig.cap = "a, b" and fig.dim = c(5, 3) stay intact.
"""
from __future__ import annotations

import re
from dataclasses import replace
from typing import Iterable, List, Optional, Tuple

from common.errors import ParseError
from rmd.document_models import ChunkHeader, ChunkOption, OptionValue

HEADER_RE = re.compile(
    r"^(?P<indent>[ \t]*)(?P<fence>`{3,})(?P<gap>[ \t]*)\{(?P<body>.*)\}(?P<trail>[ \t]*)$"
)
# a backtick fence cannot carry a backtick in its info string (```x``` is inline code)
FENCE_RE = re.compile(r"^(?P<indent>[ \t]*)(?P<fence>`{3,}(?!.*`)|~{3,})")
LANGUAGE_RE = re.compile(r"^[A-Za-z0-9_]+")
KEY_RE = re.compile(r"^[A-Za-z_.][A-Za-z0-9_.\-]*$")
LABEL_RE = re.compile(r"^[^\s,=]+$")

_TRUE = {"TRUE", "T", "true"}
_FALSE = {"FALSE", "F", "false"}
_PAIRS = {"(": ")", "[": "]", "{": "}"}


def split_eol(line: str) -> Tuple[str, str]:
    content = line.rstrip("\r\n")
    return content, line[len(content):]


def is_true(value: OptionValue) -> bool:
    return value is True


def _coerce(value: str) -> OptionValue:
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    return value


def _scan(text: str, line_no: Optional[int]) -> Tuple[List[str], List[int]]:
    """
    Split on top-level commas. Also returns, per piece, the offset of its first
    top-level "=" (-1 when there is none).
    """
    pieces: List[str] = []
    equals: List[int] = []
    buf: List[str] = []
    eq = -1
    stack: List[str] = []
    quote: Optional[str] = None
    escaped = False

    for ch in text:
        if quote:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
        elif ch in ("'", '"', "`"):
            quote = ch
        elif ch in _PAIRS:
            stack.append(_PAIRS[ch])
        elif ch in (")", "]", "}"):
            if not stack or stack.pop() != ch:
                raise ParseError(f"unbalanced {ch!r} in chunk options", line_no=line_no)
        elif ch == "," and not stack:
            pieces.append("".join(buf))
            equals.append(eq)
            buf, eq = [], -1
            continue
        elif ch == "=" and not stack and eq < 0:
            eq = len(buf)
        buf.append(ch)

    if quote:
        raise ParseError(f"unterminated {quote} quote in chunk options", line_no=line_no)
    if stack:
        raise ParseError("unclosed bracket in chunk options", line_no=line_no)
    pieces.append("".join(buf))
    equals.append(eq)
    return pieces, equals


def parse_options(
    text: str, line_no: Optional[int] = None
) -> Tuple[Tuple[ChunkOption, ...], Optional[str]]:
    """
    Parse the part of a header after the language name.
    Returns the entries and, for headers like {r, echo=FALSE}, the text of the
    empty leading entry.
    """
    if not text:
        return (), None
    if text[0] not in " \t,":
        raise ParseError(
            f"expected whitespace or ',' after the chunk language, got {text[0]!r}",
            line_no=line_no,
        )

    pieces, equals = _scan(text, line_no)
    entries: List[ChunkOption] = []
    lead: Optional[str] = None

    for i, (piece, eq) in enumerate(zip(pieces, equals)):
        token = piece.strip()
        if not token:
            if i == 0:
                lead = piece
                continue
            raise ParseError("empty entry in chunk options", line_no=line_no)

        if eq >= 0:
            key = piece[:eq].strip()
            value = piece[eq + 1 :].strip()
            if not key or not value:
                raise ParseError(f"malformed option {token!r}", line_no=line_no)
            if not KEY_RE.match(key):
                raise ParseError(f"invalid option name {key!r}", line_no=line_no)
            entries.append(ChunkOption(key=key, value=_coerce(value), raw=piece))
        elif i == 0:
            if not LABEL_RE.match(token):
                raise ParseError(f"invalid chunk label {token!r}", line_no=line_no)
            entries.append(ChunkOption(key=None, value=token, raw=piece))
        else:
            if not KEY_RE.match(token):
                raise ParseError(f"invalid option {token!r}", line_no=line_no)
            entries.append(ChunkOption(key=token, value=True, raw=piece))

    return tuple(entries), lead


def parse_header(line: str, line_no: Optional[int] = None) -> Optional[ChunkHeader]:
    """
    Parse a chunk opening line. Returns None when the line is not a knitr chunk
    header; pandoc attribute blocks such as ```{=html} or ```{.python} are not.
    """
    content, eol = split_eol(line)
    m = HEADER_RE.match(content)
    if not m:
        return None
    body = m.group("body")
    if body[:1] in ("=", ".", "#"):
        return None

    lang = LANGUAGE_RE.match(body)
    if not lang:
        raise ParseError(f"malformed chunk header {content.strip()!r}", line_no=line_no)

    entries, lead = parse_options(body[lang.end():], line_no=line_no)
    head = content[: m.start("body")]
    tail = content[m.end("body"):] + eol
    return ChunkHeader(
        indent=m.group("indent"),
        fence=m.group("fence"),
        language=lang.group(0),
        entries=entries,
        head=head,
        tail=tail,
        raw=line,
        lead=lead,
    )


def render_header(header: ChunkHeader, drop: Iterable[str] = ()) -> ChunkHeader:
    """
    Return a copy of `header` without the options named in `drop`. Remaining
    entries keep their original text and order. Unchanged headers are
    returned as-is.
    """
    drop = set(drop)
    kept = tuple(o for o in header.entries if o.key not in drop)
    if len(kept) == len(header.entries):
        return header

    pieces = ([header.lead] if header.lead is not None else []) + [o.raw for o in kept]
    rest = ",".join(pieces)
    if not rest.strip(" \t,"):
        rest = ""
    elif rest[0] not in " \t,":
        rest = " " + rest

    raw = header.head + header.language + rest + header.tail
    return replace(header, entries=kept, raw=raw, lead=header.lead if kept else None)
