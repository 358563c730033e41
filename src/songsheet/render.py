"""Plain-text song sheet formatter.

Renders a :class:`~songsheet.models.Song` at a transpose offset as
chord-over-lyric text::

    The Weight
    The Band
    Key: E (default D, +2)
    Capo: 2
    Chords: E B

    [Verse 1]
       E                 B
    I pulled into Nazareth

Usage::

    from songsheet.render import SongSheetFormatter
    text = SongSheetFormatter().render(song, semitones=2)
"""

from .chords import clamp_transpose_steps, transpose_chord
from .lyrics import (
    collect_unique_chords,
    parse_lyric_line,
    segments_to_ultimate_guitar_lines,
    transpose_segments,
)
from .models import Line, LyricSegment, Section, Song, Spacer


class SongSheetFormatter:
    """Render a :class:`~songsheet.models.Song` to chord-over-lyric text."""

    def render(self, song: Song, semitones: int = 0) -> str:
        """Return the sheet for *song* transposed by *semitones*.

        *semitones* is clamped to ``-11..11``.  The header lists every chord
        the sheet uses, in order of first appearance.  The returned string
        ends with a single newline.
        """
        semitones = clamp_transpose_steps(semitones)
        body: list[str] = []
        used: list[LyricSegment] = []

        for line in song.lines:
            if isinstance(line, Section):
                body.append(f"[{line.label}]")
            elif isinstance(line, Spacer):
                body.append("")
            else:
                segments = _line_segments(line, semitones)
                used.extend(segments)
                body.extend(_render_segments(segments))

        # --- Header ---
        parts = [song.title, song.artist, _key_line(song.default_key, semitones)]
        if song.capo:
            parts.append(f"Capo: {song.capo}")
        chords = collect_unique_chords(used)
        if chords:
            parts.append(f"Chords: {' '.join(chords)}")

        # --- Body ---
        if body:
            parts.append("")
            parts.extend(body)

        return "\n".join(parts).rstrip("\n") + "\n"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _key_line(default_key: str, semitones: int) -> str:
    current = transpose_chord(default_key, semitones)
    if semitones == 0:
        return f"Key: {current}"
    return f"Key: {current} (default {default_key}, {semitones:+d})"


def _line_segments(line: Line, semitones: int) -> list[LyricSegment]:
    content = line.content
    if not content and line.chords:
        # Lay a guide with no lyric over blanks so its columns survive.
        content = " " * len(line.chords)
    return transpose_segments(parse_lyric_line(content, line.chords), semitones)


def _render_segments(segments: list[LyricSegment]) -> list[str]:
    """Chord line (when there are chords) above the lyric."""
    chords, lyric = segments_to_ultimate_guitar_lines(segments)
    rendered = [chords] if chords else []
    if lyric.strip() or not chords:
        rendered.append(lyric if lyric.strip() else "")
    return rendered
