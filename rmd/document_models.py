from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

OptionValue = Union[str, bool]


@dataclass(frozen=True)
class ChunkOption:
    key: Optional[str]  # None for the chunk label
    value: OptionValue
    raw: str  # token text as written, surrounding whitespace included


@dataclass(frozen=True)
class ChunkHeader:
    """
    Opening line of a knitr chunk, e.g. ```{r mychunk, live = TRUE}.
    `head` is everything up to and including "{", `tail` everything from "}"
    to the end of the line (terminator included), so an unmodified header
    re-serialises to exactly `raw`.
    """

    indent: str
    fence: str
    language: str
    entries: Tuple[ChunkOption, ...]
    head: str
    tail: str
    raw: str
    lead: Optional[str] = None  # whitespace of an empty first entry, as in {r, echo=FALSE}

    @property
    def label(self) -> Optional[str]:
        for o in self.entries:
            if o.key is None:
                return str(o.value)
        return None

    @property
    def options(self) -> Dict[str, OptionValue]:
        return {o.key: o.value for o in self.entries if o.key is not None}


@dataclass
class ProseSegment:
    text: str

    def to_text(self) -> str:
        return self.text


@dataclass
class CodeSegment:
    header: ChunkHeader
    lines: List[str]  # body lines, terminators included
    closing: str  # closing fence line, terminator included if present

    @property
    def language(self) -> str:
        return self.header.language

    @property
    def options(self) -> Dict[str, OptionValue]:
        return self.header.options

    def to_text(self) -> str:
        return self.header.raw + "".join(self.lines) + self.closing


Segment = Union[ProseSegment, CodeSegment]


@dataclass
class Document:
    segments: List[Segment] = field(default_factory=list)
    source: Optional[Path] = None

    def to_text(self) -> str:
        return "".join(s.to_text() for s in self.segments)

    def code_segments(self) -> List[CodeSegment]:
        return [s for s in self.segments if isinstance(s, CodeSegment)]
