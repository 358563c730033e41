"""Lyric line parsing: chord-guide detection, segmentation and transposition.

A lyric line is turned into an ordered list of
:class:`~songsheet.models.LyricSegment` objects, each a lyric fragment that
may start with a chord change.  Two notations are understood:

  "guide":  Ultimate Guitar style, chords on their own line above the lyric:

                 C        G
             Hello there my friend

  "inline": chords embedded in the lyric: ``Hello [C]there my [G]friend``

Pipeline:

  1. is_likely_chord_guide_line()          # is this line mostly chord symbols?
  2. parse_lyric_line()                    # lyric (+ guide) → segments
  3. transpose_segments()                  # move every chord, keep the lyrics
  4. segments_to_ultimate_guitar_lines()   # segments → (guide, lyric) text
"""

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from functools import reduce
from typing import NamedTuple

from .chords import ChordQuality, parse_chord, transpose_chord
from .models import LyricSegment

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants / regexes
# ---------------------------------------------------------------------------

# Share of tokens that must be chords for a multi-token line to count as a
# chord guide.
CHORD_GUIDE_THRESHOLD = 0.6

# Punctuation allowed around a chord in a guide line: "|C", "(G)", "[Am]"
_GUIDE_PUNCTUATION = "|()[]"

_TOKEN_RE = re.compile(r"\S+")
INLINE_CHORD_RE = re.compile(r"\[([^\]]+)\]")


# ---------------------------------------------------------------------------
# Chord-guide lines
# ---------------------------------------------------------------------------


def sanitize_chord_token(token: str) -> str:
    """Strip guide-line punctuation (``|()[]``) from a token."""
    return token.strip(_GUIDE_PUNCTUATION)


def chord_tokens_with_offsets(line: str, strict: bool = False) -> list[tuple[int, str]]:
    """Return ``(column_offset, chord)`` pairs for the chord tokens in *line*.

    The offset is the column of the chord's first character once surrounding
    punctuation is removed, so ``"(G)"`` at column 4 gives ``(5, "G")``.

    Args:
        line:   A raw text line.
        strict: Also reject chords whose quality is unknown (``"Bad"``,
                ``"Go"``).

    Returns:
        Pairs sorted left to right.
    """
    result: list[tuple[int, str]] = []
    for match in _TOKEN_RE.finditer(line):
        token = match.group()
        chord = sanitize_chord_token(token)
        parsed = parse_chord(chord) if chord else None
        if parsed is None or (strict and parsed.quality is ChordQuality.UNKNOWN):
            continue
        leading = len(token) - len(token.lstrip(_GUIDE_PUNCTUATION))
        result.append((match.start() + leading, chord))
    return result


def is_likely_chord_guide_line(line: str) -> bool:
    """Decide whether *line* is a chord-guide line rather than a lyric.

    A single-token line must be a chord itself.  A longer line needs at least
    :data:`CHORD_GUIDE_THRESHOLD` of its tokens to be chords with a known
    quality, which tolerates stray notes such as ``x4`` or ``(2x)``::

        is_likely_chord_guide_line("   C        G        Am")   -> True
        is_likely_chord_guide_line("C   G   (2x)")              -> True
        is_likely_chord_guide_line("A day in the life")         -> False
    """
    tokens = line.split()
    if not tokens:
        return False

    chord_count = len(chord_tokens_with_offsets(line, strict=True))
    if chord_count == 0:
        return False
    if len(tokens) == 1:
        return chord_count == 1
    return chord_count / len(tokens) >= CHORD_GUIDE_THRESHOLD


# ---------------------------------------------------------------------------
# Segmentation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _ChordMark:
    """A chord anchored in the lyric text; ``start:end`` is markup to drop."""

    start: int
    end: int
    chord: str


@dataclass(frozen=True)
class _SegmentFold:
    segments: tuple[LyricSegment, ...] = ()
    cursor: int = 0
    pending: str | None = None


def _emit(pending: str | None, chunk: str) -> tuple[LyricSegment, ...]:
    if pending is not None:
        return (LyricSegment(lyric=chunk, chord=pending),)
    if chunk:
        return (LyricSegment(lyric=chunk),)
    return ()


def _segments_from_marks(text: str, marks: Iterable[_ChordMark]) -> list[LyricSegment]:
    """Cut *text* at each mark; each mark's chord owns the text up to the next mark.

    Mark positions are clamped so they never move backwards and never pass
    the end of *text*.
    """

    def step(state: _SegmentFold, mark: _ChordMark) -> _SegmentFold:
        start = min(max(mark.start, state.cursor), len(text))
        end = min(max(mark.end, start), len(text))
        return _SegmentFold(
            segments=state.segments + _emit(state.pending, text[state.cursor:start]),
            cursor=end,
            pending=mark.chord,
        )

    final = reduce(step, marks, _SegmentFold())
    return list(final.segments + _emit(final.pending, text[final.cursor:]))


def _inline_marks(line: str) -> list[_ChordMark]:
    return [
        _ChordMark(start=m.start(), end=m.end(), chord=m.group(1).strip())
        for m in INLINE_CHORD_RE.finditer(line)
    ]


def _guide_marks(chord_guide: str) -> list[_ChordMark]:
    return [
        _ChordMark(start=offset, end=offset, chord=chord)
        for offset, chord in chord_tokens_with_offsets(chord_guide)
    ]


def parse_lyric_line(lyric: str, chord_guide: str | None = None) -> list[LyricSegment]:
    """Split a lyric line into chord/lyric segments.

    With a non-blank *chord_guide*, each chord token in the guide starts a
    segment at the same column of *lyric*; the guide contributes no text, so
    the segments' lyrics join back to *lyric* exactly.  Columns past the end
    of the lyric are clamped to it.

    Without a guide (or when the guide holds no chords) ``[Chord]`` markup
    inside *lyric* is used instead and the brackets are removed.

    Example::

        parse_lyric_line("Hello there", "      G")
        -> [LyricSegment("Hello "), LyricSegment("there", chord="G")]

    Returns:
        At least one segment; a line with nothing to split is returned whole.
    """
    marks: list[_ChordMark] = []
    if chord_guide and chord_guide.strip():
        marks = _guide_marks(chord_guide)
        if not marks:
            logger.debug("Chord guide %r holds no chords; using inline markup", chord_guide)
    if not marks:
        marks = _inline_marks(lyric)

    segments = _segments_from_marks(lyric, marks)
    return segments or [LyricSegment(lyric=lyric)]


def transpose_segments(
    segments: Iterable[LyricSegment],
    semitones: int,
    transpose_fn: Callable[[str, int], str] = transpose_chord,
) -> list[LyricSegment]:
    """Transpose the chord of every segment; lyrics are untouched."""
    return [
        LyricSegment(lyric=segment.lyric, chord=transpose_fn(segment.chord, semitones))
        if segment.chord
        else segment
        for segment in segments
    ]


def collect_unique_chords(segments: Iterable[LyricSegment]) -> list[str]:
    """Distinct chords in the order they first appear."""
    return list(dict.fromkeys(segment.chord for segment in segments if segment.chord))


# ---------------------------------------------------------------------------
# Re-serialisation
# ---------------------------------------------------------------------------


class UltimateGuitarLines(NamedTuple):
    chords: str
    lyric: str


def _span_is_free(buffer: list[str], start: int, width: int) -> bool:
    # The column before the chord must be blank too, or two chords would
    # run together into one token.
    first = max(start - 1, 0)
    return all(buffer[i] == " " for i in range(first, min(start + width, len(buffer))))


def segments_to_ultimate_guitar_lines(segments: Iterable[LyricSegment]) -> UltimateGuitarLines:
    """Render segments as a chord-guide line above a plain lyric line.

    Each chord is written at the column where its lyric starts.  When that
    column is already taken by the previous chord, the chord slides right
    until it fits; it never moves left.  Adjacent chords are always kept at
    least one blank column apart so they never read as one token.  Trailing
    spaces are trimmed from the chord line only.

    Returns:
        ``(chords, lyric)``; ``chords`` is ``""`` when no segment has a chord.
    """
    segments = list(segments)
    lyric = "".join(segment.lyric for segment in segments)
    if not any(segment.chord for segment in segments):
        return UltimateGuitarLines(chords="", lyric=lyric)

    buffer: list[str] = []
    position = 0
    cursor = 0
    for segment in segments:
        if segment.chord:
            start = max(position, cursor)
            while not _span_is_free(buffer, start, len(segment.chord)):
                start += 1
            end = start + len(segment.chord)
            if end > len(buffer):
                buffer.extend(" " * (end - len(buffer)))
            buffer[start:end] = segment.chord
            cursor = end
        position += len(segment.lyric)

    return UltimateGuitarLines(chords="".join(buffer).rstrip(), lyric=lyric)
