"""Chord symbol parsing and transposition.

A chord symbol is split into a root note, a free-form suffix and an optional
bass note::

    "F#m7b5/A"  →  root "F#", suffix "m7b5", bass "A", quality HALF_DIMINISHED

Roots are normalised onto the twelve sharp pitch names (``C``, ``C#`` … ``B``).
Flat spellings (``Bb``, ``Eb``) and the unicode accidentals ``♭``/``♯`` are
accepted; the original spelling style is remembered in
:attr:`ParsedChord.prefers_flat` so transposed output keeps the same style.

Nothing in this module raises on bad input.  Unparseable symbols give ``None``
from :func:`parse_chord` and are passed through unchanged by
:func:`transpose_chord`.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------

NOTE_SEQUENCE: tuple[str, ...] = (
    "C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B",
)
NOTE_INDEX: dict[str, int] = {note: index for index, note in enumerate(NOTE_SEQUENCE)}

FLAT_TO_SHARP: dict[str, str] = {
    "Db": "C#",
    "Eb": "D#",
    "Gb": "F#",
    "Ab": "G#",
    "Bb": "A#",
    "Cb": "B",
    "Fb": "E",
}

# Only the five black keys get a flat spelling; naturals stay natural.
SHARP_TO_FLAT: dict[str, str] = {
    "C#": "Db",
    "D#": "Eb",
    "F#": "Gb",
    "G#": "Ab",
    "A#": "Bb",
}

MIN_TRANSPOSE_STEPS = -11
MAX_TRANSPOSE_STEPS = 11

_ROOT_RE = re.compile(r"^([A-G](?:#|b|♯|♭)?)(.*)$", re.DOTALL)


def normalize_note(note: str) -> str | None:
    """Return the canonical sharp spelling of *note*, or ``None``.

    Tries, in order: an exact canonical name, the name with unicode
    accidentals replaced, and the flat → sharp table.
    """
    cleaned = note.strip()
    if cleaned in NOTE_INDEX:
        return cleaned

    formatted = cleaned.replace("♭", "b").replace("♯", "#")
    if formatted in NOTE_INDEX:
        return formatted

    sharp = FLAT_TO_SHARP.get(formatted)
    if sharp in NOTE_INDEX:
        return sharp

    return None


def transpose_note(note: str, semitones: int, prefer_flat: bool = False) -> str:
    """Move *note* by *semitones*; unknown notes are returned unchanged."""
    normalized = normalize_note(note)
    if normalized is None:
        return note

    # Python's % is already non-negative for a positive modulus.
    sharp_name = NOTE_SEQUENCE[(NOTE_INDEX[normalized] + semitones) % 12]
    if prefer_flat:
        return SHARP_TO_FLAT.get(sharp_name, sharp_name)
    return sharp_name


def semitone_distance(from_note: str, to_note: str) -> int | None:
    """Upward distance in semitones (0-11) between two notes."""
    start = normalize_note(from_note)
    end = normalize_note(to_note)
    if start is None or end is None:
        return None
    return (NOTE_INDEX[end] - NOTE_INDEX[start]) % 12


# ---------------------------------------------------------------------------
# Chord quality
# ---------------------------------------------------------------------------


class ChordQuality(Enum):
    MAJOR = "maj"
    MINOR = "m"
    DOMINANT_7 = "7"
    MINOR_7 = "m7"
    MAJOR_7 = "maj7"
    SUS4 = "sus4"
    SUS2 = "sus2"
    SEVEN_SUS4 = "7sus4"
    ADD9 = "add9"
    DIMINISHED = "dim"
    DIMINISHED_7 = "dim7"
    HALF_DIMINISHED = "m7b5"
    AUGMENTED = "aug"
    UNKNOWN = "unknown"


# Ordered prefix rules for everything after the minor family.  First match
# wins, so longer prefixes that share a start ("maj7" / "maj", "7sus4" / "7",
# "dim7" / "dim") must come first.
_QUALITY_PREFIXES: tuple[tuple[tuple[str, ...], ChordQuality], ...] = (
    (("maj7", "ma7"), ChordQuality.MAJOR_7),
    (("maj",), ChordQuality.MAJOR),
    (("7sus4",), ChordQuality.SEVEN_SUS4),
    (("sus2",), ChordQuality.SUS2),
    (("sus4", "sus"), ChordQuality.SUS4),
    (("add9",), ChordQuality.ADD9),
    (("dim7",), ChordQuality.DIMINISHED_7),
    (("dim", "°"), ChordQuality.DIMINISHED),
    (("aug", "+"), ChordQuality.AUGMENTED),
    (("m7b5", "min7b5"), ChordQuality.HALF_DIMINISHED),
    (("m7", "min7"), ChordQuality.MINOR_7),
    (("m9",), ChordQuality.MINOR_7),
    (("9", "11", "13"), ChordQuality.DOMINANT_7),
    (("7",), ChordQuality.DOMINANT_7),
)


def chord_quality(suffix: str) -> ChordQuality:
    """Classify a chord suffix (the text after the root).

    Args:
        suffix: e.g. ``""``, ``"m7"``, ``"sus"``, ``"13"``.

    Returns:
        The :class:`ChordQuality`; :attr:`ChordQuality.UNKNOWN` when no rule
        matches.
    """
    lower = suffix.lower()
    if not lower:
        return ChordQuality.MAJOR

    # "maj" also starts with "m", so only a bare "m", "min…", "-…" or "ø…"
    # opens the minor family. "m7…" falls through to the prefix rules.
    if lower == "m" or lower.startswith(("min", "-", "ø")):
        if lower.startswith(("m7b5", "min7b5", "ø")):
            return ChordQuality.HALF_DIMINISHED
        if lower.startswith(("m7", "min7")):
            return ChordQuality.MINOR_7
        return ChordQuality.MINOR

    for prefixes, quality in _QUALITY_PREFIXES:
        if lower.startswith(prefixes):
            return quality

    return ChordQuality.UNKNOWN


# ---------------------------------------------------------------------------
# Parsing / transposition
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParsedChord:
    """A chord symbol broken into its parts.

    ``root`` and ``bass`` are canonical sharp names; ``suffix`` is the
    original text after the root, trimmed.
    """

    root: str
    suffix: str
    quality: ChordQuality
    prefers_flat: bool = False
    bass: str | None = None
    bass_prefers_flat: bool = False

    @property
    def symbol(self) -> str:
        """Canonical symbol rebuilt from the parts (sharp spelling)."""
        return f"{self.root}{self.suffix}" + (f"/{self.bass}" if self.bass else "")


def parse_chord(symbol: str) -> ParsedChord | None:
    """Parse *symbol* into a :class:`ParsedChord`.

    Returns ``None`` when the symbol has no recognisable root letter.  A
    recognised root with an unrecognised suffix still parses, with quality
    :attr:`ChordQuality.UNKNOWN`.  A bass note that cannot be normalised is
    dropped.
    """
    if not symbol.strip():
        return None

    chord_part, _, bass_part = symbol.partition("/")
    match = _ROOT_RE.match(chord_part.strip())
    if not match:
        return None

    raw_root, raw_suffix = match.groups()
    root = normalize_note(raw_root)
    if root is None:
        return None

    suffix = raw_suffix.strip()
    raw_bass = bass_part.strip()
    bass = normalize_note(raw_bass) if raw_bass else None
    return ParsedChord(
        root=root,
        suffix=suffix,
        quality=chord_quality(suffix),
        prefers_flat="b" in raw_root or "♭" in raw_root,
        bass=bass,
        bass_prefers_flat=bass is not None and ("b" in raw_bass or "♭" in raw_bass),
    )


def transpose_chord(symbol: str, semitones: int) -> str:
    """Transpose a chord symbol by *semitones*.

    The suffix is carried over verbatim and a slash bass moves with the root.
    Flat-spelled input stays flat-spelled::

        transpose_chord("C", 2)       -> "D"
        transpose_chord("Bb/D", 2)    -> "C/E"
        transpose_chord("F#m7", 1)    -> "Gm7"

    Unparseable symbols are returned as given.
    """
    parsed = parse_chord(symbol)
    if parsed is None:
        logger.debug("Not transposing unparseable chord %r", symbol)
        return symbol

    root = transpose_note(parsed.root, semitones, parsed.prefers_flat)
    result = f"{root}{parsed.suffix}"
    if parsed.bass:
        result += "/" + transpose_note(parsed.bass, semitones, parsed.bass_prefers_flat)
    return result


def clamp_transpose_steps(steps: int) -> int:
    """Clamp a transpose offset into the supported ``-11..11`` range."""
    return max(MIN_TRANSPOSE_STEPS, min(MAX_TRANSPOSE_STEPS, steps))


def transpose_options(key: str) -> list[tuple[int, str]]:
    """Return ``(steps, key)`` for every supported transpose offset of *key*."""
    return [
        (steps, transpose_chord(key, steps))
        for steps in range(MIN_TRANSPOSE_STEPS, MAX_TRANSPOSE_STEPS + 1)
    ]
