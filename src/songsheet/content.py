"""Song text ⇄ song lines.

:func:`parse_content` reads pasted or imported song text into a list of
:data:`~songsheet.models.SongLine` values; :func:`stringify_lines` writes it
back out as Ultimate Guitar style text for editing.

Line classification (first rule that applies wins):

+-------------------------------+-----------------------------------------+
| Input line                    | Result                                  |
+===============================+=========================================+
| blank / whitespace only       | ``Spacer`` (runs collapse to one)       |
+-------------------------------+-----------------------------------------+
| ``[Label]``                   | ``Section("Label")``                    |
+-------------------------------+-----------------------------------------+
| ``# Label``                   | ``Section("Label")``                    |
+-------------------------------+-----------------------------------------+
| chord-guide line              | held until the next line                |
+-------------------------------+-----------------------------------------+
| anything else                 | ``Line(content, chords=<held guide>)``  |
+-------------------------------+-----------------------------------------+

A held guide that is not followed by a lyric line is emitted on its own as
``Line("", chords=guide)``.
"""

import logging
import re
from dataclasses import dataclass
from functools import reduce

from .lyrics import is_likely_chord_guide_line, parse_lyric_line, segments_to_ultimate_guitar_lines
from .models import Line, Section, SongLine, Spacer

logger = logging.getLogger(__name__)

DEFAULT_SECTION_LABEL = "Section"

_BRACKET_SECTION_RE = re.compile(r"^\[(.+)\]$")
_SLUG_MAX_LENGTH = 60


@dataclass(frozen=True)
class _ParseState:
    lines: tuple[SongLine, ...] = ()
    pending_guide: str | None = None

    def flushed(self) -> tuple[SongLine, ...]:
        """Emitted lines, plus the held guide as a lyric-less line."""
        if self.pending_guide is None:
            return self.lines
        return self.lines + (Line(content="", chords=self.pending_guide),)


def _section_label(text: str) -> str:
    return text.strip() or DEFAULT_SECTION_LABEL


def _consume(state: _ParseState, line: str) -> _ParseState:
    trimmed = line.strip()

    if not trimmed:
        lines = state.flushed()
        if not lines or not isinstance(lines[-1], Spacer):
            lines += (Spacer(),)
        return _ParseState(lines=lines)

    bracketed = _BRACKET_SECTION_RE.match(trimmed)
    if bracketed:
        return _ParseState(lines=state.flushed() + (Section(label=_section_label(bracketed.group(1))),))

    if trimmed.startswith("#"):
        return _ParseState(lines=state.flushed() + (Section(label=_section_label(line.lstrip().lstrip("#"))),))

    if is_likely_chord_guide_line(line):
        return _ParseState(lines=state.flushed(), pending_guide=line)

    return _ParseState(lines=state.lines + (Line(content=line, chords=state.pending_guide),))


def parse_content(text: str) -> list[SongLine]:
    """Parse song text into song lines.

    Args:
        text: Raw song text; ``\\r\\n`` and ``\\r`` line endings are accepted.

    Returns:
        Song lines in source order.  Never two spacers in a row.
    """
    raw_lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    lines = list(reduce(_consume, raw_lines, _ParseState()).flushed())
    logger.debug("Parsed %d text lines into %d song lines", len(raw_lines), len(lines))
    return lines


def stringify_lines(lines: list[SongLine]) -> str:
    """Write song lines back out as text.

    Lines with a stored chord guide are written verbatim (guide, then
    lyric).  Other lines are re-segmented from their inline ``[Chord]``
    markup and a guide line is synthesised above them.  Parsing the result
    gives the same chords over the same lyric positions, though not
    necessarily the same text.
    """
    output: list[str] = []
    for line in lines:
        if isinstance(line, Section):
            output.append(f"[{line.label}]")
        elif isinstance(line, Spacer):
            output.append("")
        elif line.chords and line.chords.strip():
            output.extend((line.chords, line.content))
        else:
            chords, lyric = segments_to_ultimate_guitar_lines(parse_lyric_line(line.content))
            if chords:
                output.append(chords)
            output.append(lyric)
    return "\n".join(output)


# ---------------------------------------------------------------------------
# Song ids
# ---------------------------------------------------------------------------


def slugify(value: str) -> str:
    """Lowercase hyphenated slug, at most 60 characters."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower())
    return slug.strip("-")[:_SLUG_MAX_LENGTH]


def build_song_id(title: str, artist: str) -> str:
    """Stable id for a song, e.g. ``"the-band-the-weight"``."""
    base = f"{slugify(artist)}-{slugify(title)}".strip("-")
    return base or slugify(title) or "song"
