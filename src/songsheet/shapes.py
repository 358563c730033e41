"""Guitar chord shapes for diagram rendering.

Shapes are looked up in two places:

  1. ``OPEN_SHAPES``: hand-voiced open-position shapes keyed by
     ``(root, quality)``.
  2. ``BARRE_TEMPLATES``: one movable shape per quality, written for a base
     root (F or B) and slid up the neck by the distance to the target root.

User edits are layered on top by :func:`merge_chord_shapes`.  A custom shape
whose id is a *default override* (``default-override:<chord>:<index>``)
replaces the built-in shape at that index; any other custom shape is appended.

String index 0 is the low E string, index 5 the high E string.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from urllib.parse import quote, unquote

from .chords import ChordQuality, parse_chord, semitone_distance

logger = logging.getLogger(__name__)

MUTED = "x"
STRING_COUNT = 6
DIAGRAM_FRETS = 5

DEFAULT_OVERRIDE_PREFIX = "default-override:"
DEFAULT_LABEL = "Default"
CUSTOM_LABEL = "Custom"

Fret = int | str  # a fret number, or MUTED


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Barre:
    """One finger laid across several strings at the same fret."""

    fret: int
    from_string: int
    to_string: int
    finger: int | None = None


@dataclass(frozen=True)
class ChordShape:
    frets: tuple[Fret, ...]
    fingers: tuple[int | None, ...] | None = None
    barres: tuple[Barre, ...] = ()
    is_open: bool = False
    label: str | None = None

    def __post_init__(self) -> None:
        if len(self.frets) != STRING_COUNT:
            raise ValueError(f"A chord shape needs {STRING_COUNT} frets, got {len(self.frets)}")


@dataclass(frozen=True, kw_only=True)
class CustomChordShape(ChordShape):
    """A user-defined shape with a stable id."""

    id: str


@dataclass(frozen=True)
class ShapeTemplate:
    """A movable shape written for ``base_root``."""

    base_root: str
    frets: tuple[Fret, ...]
    fingers: tuple[int | None, ...] | None = None
    barres: tuple[Barre, ...] = ()
    is_open: bool = False


@dataclass(frozen=True)
class BuiltInSelection:
    index: int


@dataclass(frozen=True)
class CustomSelection:
    id: str


PreferredShapeSelection = BuiltInSelection | CustomSelection


# ---------------------------------------------------------------------------
# Built-in tables
# ---------------------------------------------------------------------------

_X = MUTED
_FULL_BARRE = (Barre(fret=1, from_string=0, to_string=5, finger=1),)


def _open(frets: tuple[Fret, ...], fingers: tuple[int | None, ...], barres: tuple[Barre, ...] = ()) -> tuple[ChordShape, ...]:
    return (ChordShape(frets=frets, fingers=fingers, barres=barres, is_open=True),)


_Q = ChordQuality

OPEN_SHAPES: dict[tuple[str, ChordQuality], tuple[ChordShape, ...]] = {
    ("C", _Q.MAJOR): _open((_X, 3, 2, 0, 1, 0), (None, 3, 2, None, 1, None)),
    ("A", _Q.MAJOR): _open((_X, 0, 2, 2, 2, 0), (None, None, 1, 2, 3, None)),
    ("G", _Q.MAJOR): _open((3, 2, 0, 0, 0, 3), (2, 1, None, None, None, 3)),
    ("E", _Q.MAJOR): _open((0, 2, 2, 1, 0, 0), (None, 2, 3, 1, None, None)),
    ("D", _Q.MAJOR): _open((_X, _X, 0, 2, 3, 2), (None, None, None, 1, 3, 2)),
    ("C", _Q.MAJOR_7): _open((_X, 3, 2, 0, 0, 0), (None, 3, 2, None, None, None)),
    ("G", _Q.MAJOR_7): _open((3, 2, 0, 0, 0, 2), (2, 1, None, None, None, 3)),
    ("A", _Q.MAJOR_7): _open((_X, 0, 2, 1, 2, 0), (None, None, 2, 1, 3, None)),
    ("C", _Q.ADD9): _open((_X, 3, 2, 0, 3, 0), (None, 3, 2, None, 4, None)),
    ("G", _Q.ADD9): _open((3, 0, 0, 2, 0, 2), (2, None, None, 1, None, 3)),
    ("A", _Q.SUS2): _open((_X, 0, 2, 2, 0, 0), (None, None, 2, 3, None, None)),
    ("D", _Q.SUS2): _open((_X, _X, 0, 2, 3, 0), (None, None, None, 1, 3, None)),
    ("A", _Q.SUS4): _open((_X, 0, 2, 2, 3, 0), (None, None, 1, 2, 3, None)),
    ("D", _Q.SUS4): _open((_X, _X, 0, 2, 3, 3), (None, None, None, 1, 3, 4)),
    ("G", _Q.SUS4): _open((3, 3, 0, 0, 1, 3), (2, 3, None, None, 1, 4)),
    ("A", _Q.SEVEN_SUS4): _open((_X, 0, 2, 0, 3, 0), (None, None, 2, None, 4, None)),
    ("E", _Q.SUS4): _open((0, 2, 2, 2, 0, 0), (None, 2, 3, 4, None, None)),
    ("E", _Q.SUS2): _open((0, 2, 4, 4, 0, 0), (None, 1, 3, 4, None, None)),
    ("A", _Q.MINOR): _open((_X, 0, 2, 2, 1, 0), (None, None, 2, 3, 1, None)),
    ("E", _Q.MINOR): _open((0, 2, 2, 0, 0, 0), (None, 2, 3, None, None, None)),
    ("D", _Q.MINOR): _open((_X, _X, 0, 2, 3, 1), (None, None, None, 2, 3, 1)),
    ("E", _Q.MINOR_7): _open((0, 2, 0, 0, 0, 0), (None, 2, None, None, None, None)),
    ("A", _Q.MINOR_7): _open((_X, 0, 2, 0, 1, 0), (None, None, 2, None, 1, None)),
    ("D", _Q.MINOR_7): _open(
        (_X, _X, 0, 2, 1, 1),
        (None, None, None, 2, 1, 1),
        (Barre(fret=1, from_string=4, to_string=5, finger=1),),
    ),
    ("G", _Q.DOMINANT_7): _open((3, 2, 0, 0, 0, 1), (2, 1, None, None, None, 3)),
    ("C", _Q.DOMINANT_7): _open((_X, 3, 2, 3, 1, 0), (None, 3, 2, 4, 1, None)),
    ("A", _Q.DOMINANT_7): _open((_X, 0, 2, 0, 2, 0), (None, None, 2, None, 3, None)),
    ("E", _Q.DOMINANT_7): _open((0, 2, 0, 1, 0, 0), (None, 2, None, 1, None, None)),
    ("D", _Q.DOMINANT_7): _open((_X, _X, 0, 2, 1, 2), (None, None, None, 2, 1, 3)),
}

# Every quality has an entry; an empty tuple means "no movable shape".
BARRE_TEMPLATES: dict[ChordQuality, tuple[ShapeTemplate, ...]] = {
    _Q.MAJOR: (ShapeTemplate("F", (1, 3, 3, 2, 1, 1), (None, 3, 4, 2, None, None), _FULL_BARRE),),
    _Q.MINOR: (ShapeTemplate("F", (1, 3, 3, 1, 1, 1), (None, 3, 4, None, None, None), _FULL_BARRE),),
    _Q.DOMINANT_7: (ShapeTemplate("F", (1, 3, 1, 2, 1, 1), (None, 3, None, 2, None, None), _FULL_BARRE),),
    _Q.MINOR_7: (ShapeTemplate("F", (1, 3, 1, 1, 1, 1), (None, 3, None, None, None, None), _FULL_BARRE),),
    _Q.MAJOR_7: (ShapeTemplate("F", (1, 3, 2, 2, 1, 1), (None, 3, 2, 4, None, None), _FULL_BARRE),),
    _Q.SUS4: (ShapeTemplate("F", (1, 3, 3, 3, 1, 1), (None, 3, 4, 2, None, None), _FULL_BARRE),),
    _Q.SUS2: (),
    _Q.SEVEN_SUS4: (ShapeTemplate("F", (1, 3, 1, 3, 1, 1), (None, 3, None, 4, None, None), _FULL_BARRE),),
    _Q.ADD9: (ShapeTemplate("F", (1, 3, 3, 1, 1, 3), (None, 3, 4, None, None, 4), _FULL_BARRE),),
    _Q.DIMINISHED: (ShapeTemplate("B", (_X, 2, 3, 4, 3, _X), (None, 1, 2, 4, 3, None)),),
    _Q.DIMINISHED_7: (
        ShapeTemplate(
            "B",
            (_X, 2, 3, 1, 3, 1),
            (None, 2, 3, 1, 4, 1),
            (Barre(fret=1, from_string=3, to_string=5, finger=1),),
        ),
    ),
    _Q.HALF_DIMINISHED: (ShapeTemplate("B", (_X, 2, 3, 2, 3, _X), (None, 1, 3, 2, 4, None)),),
    _Q.AUGMENTED: (ShapeTemplate("F", (1, 4, 3, 2, 2, 1), (1, 4, 3, 2, 2, 1), _FULL_BARRE),),
    _Q.UNKNOWN: (),
}


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


def quality_suffix(quality: ChordQuality) -> str:
    """Suffix used when naming a built-in shape (``maj`` is written bare)."""
    return "" if quality is ChordQuality.MAJOR else quality.value


def shape_from_template(template: ShapeTemplate, target_root: str) -> ChordShape | None:
    """Slide *template* up the neck so it sounds *target_root*.

    Fretted notes and barres move by the same distance; a barre that would
    land on or below the nut is dropped.
    """
    distance = semitone_distance(template.base_root, target_root)
    if distance is None:
        return None

    frets = tuple(fret if fret == MUTED else fret + distance for fret in template.frets)
    barres = tuple(
        replace(barre, fret=barre.fret + distance)
        for barre in template.barres
        if barre.fret + distance > 0
    )
    return ChordShape(
        frets=frets,
        fingers=template.fingers,
        barres=barres,
        is_open=template.is_open,
    )


def get_chord_shapes(symbol: str) -> list[ChordShape]:
    """Return every built-in shape for *symbol*: open shapes first, then barre shapes.

    Chords that don't parse, or whose quality is unknown, have no shapes.
    """
    parsed = parse_chord(symbol)
    if parsed is None or parsed.quality is ChordQuality.UNKNOWN:
        return []

    shapes = list(OPEN_SHAPES.get((parsed.root, parsed.quality), ()))
    for template in BARRE_TEMPLATES[parsed.quality]:
        shape = shape_from_template(template, parsed.root)
        if shape is not None:
            shapes.append(shape)

    if not shapes:
        logger.debug("No shape available for %r (%s)", symbol, parsed.quality.value)
    return shapes


def get_chord_shape(symbol: str) -> ChordShape | None:
    """Best single shape for *symbol*, or ``None`` when there is no diagram."""
    shapes = get_chord_shapes(symbol)
    return shapes[0] if shapes else None


def list_built_in_chord_shapes() -> dict[str, list[ChordShape]]:
    """The full built-in table keyed by chord symbol.

    Open shapes are listed under their own symbol; each barre template is
    listed once, under its base root.
    """
    shapes: dict[str, list[ChordShape]] = {}
    for (root, quality), open_shapes in OPEN_SHAPES.items():
        shapes.setdefault(f"{root}{quality_suffix(quality)}", []).extend(open_shapes)

    for quality, templates in BARRE_TEMPLATES.items():
        for template in templates:
            shape = shape_from_template(template, template.base_root)
            if shape is not None:
                shapes.setdefault(f"{template.base_root}{quality_suffix(quality)}", []).append(shape)
    return shapes


def format_frets(shape: ChordShape) -> str:
    """Compact fret notation, e.g. ``x32010``; dash-separated above fret 9."""
    parts = [str(fret) for fret in shape.frets]
    if any(len(part) > 1 for part in parts):
        return "-".join(parts)
    return "".join(parts)


def diagram_start_fret(shape: ChordShape, visible_frets: int = DIAGRAM_FRETS) -> int:
    """First fret shown in a diagram window of *visible_frets* frets.

    Open shapes always start at the nut.  Otherwise the window starts at the
    lowest fretted note and moves up when the highest note would not fit.
    """
    fretted = [fret for fret in shape.frets if fret != MUTED and fret > 0]
    if shape.is_open or not fretted:
        return 1

    low, high = min(fretted), max(fretted)
    if low <= 1:
        return 1
    if high - low >= visible_frets:
        return high - (visible_frets - 1)
    return low


# ---------------------------------------------------------------------------
# User shapes
# ---------------------------------------------------------------------------


def build_default_override_id(chord: str, index: int) -> str:
    """Id for a custom shape that replaces built-in shape *index* of *chord*."""
    return f"{DEFAULT_OVERRIDE_PREFIX}{quote(chord, safe='')}:{index}"


def parse_default_override_id(shape_id: str) -> tuple[str, int] | None:
    """Return ``(chord, index)`` for a default-override id, else ``None``."""
    if not shape_id.startswith(DEFAULT_OVERRIDE_PREFIX):
        return None
    encoded_chord, _, index = shape_id[len(DEFAULT_OVERRIDE_PREFIX):].partition(":")
    if not re.fullmatch(r"\d+", index):
        return None
    return unquote(encoded_chord), int(index)


@dataclass
class _ShapeEntry:
    shape: ChordShape
    built_in_index: int | None = None
    custom_id: str | None = None


@dataclass
class _MergedShapes:
    """Built-in slots (overrides land here) followed by appended custom shapes."""

    slots: list[_ShapeEntry | None] = field(default_factory=list)
    appended: list[_ShapeEntry] = field(default_factory=list)

    def put(self, index: int, entry: _ShapeEntry) -> None:
        if index >= len(self.slots):
            self.slots.extend([None] * (index + 1 - len(self.slots)))
        self.slots[index] = entry

    def entries(self) -> list[_ShapeEntry]:
        return [entry for entry in self.slots if entry is not None] + self.appended


def _as_chord_shape(shape: ChordShape, fallback_label: str) -> ChordShape:
    return ChordShape(
        frets=shape.frets,
        fingers=shape.fingers,
        barres=shape.barres,
        is_open=shape.is_open,
        label=shape.label if shape.label is not None else fallback_label,
    )


def _matches(entry: _ShapeEntry, selection: PreferredShapeSelection) -> bool:
    if isinstance(selection, CustomSelection):
        return entry.custom_id == selection.id
    return entry.built_in_index == selection.index


def merge_chord_shapes(
    built_in: dict[str, list[ChordShape]],
    custom: dict[str, list[CustomChordShape]],
    preferred: dict[str, PreferredShapeSelection] | None = None,
) -> dict[str, list[ChordShape]]:
    """Combine built-in shapes with user shapes and preferred selections.

    For every symbol in either table:

    1. Built-in shapes are listed in table order (label defaults to
       ``"Default"``).
    2. A custom shape whose id is a default override for this symbol replaces
       the built-in shape at its index; other custom shapes are appended
       (label defaults to ``"Custom"``).
    3. If *preferred* names a shape that is present but not first, it is moved
       to the front; the others keep their relative order.

    Args:
        built_in:  Symbol → built-in shapes, e.g. from
                   :func:`list_built_in_chord_shapes`.
        custom:    Symbol → user shapes.
        preferred: Symbol → which shape to show first.

    Returns:
        Symbol → merged shape list.  No shape is ever dropped.
    """
    preferred = preferred or {}
    result: dict[str, list[ChordShape]] = {}

    for symbol in dict.fromkeys([*built_in, *custom]):
        merged = _MergedShapes()
        for index, shape in enumerate(built_in.get(symbol, [])):
            merged.put(index, _ShapeEntry(_as_chord_shape(shape, DEFAULT_LABEL), built_in_index=index))

        for custom_shape in custom.get(symbol, []):
            override = parse_default_override_id(custom_shape.id)
            if override is not None and override[0] == symbol:
                index = override[1]
                entry = _ShapeEntry(
                    _as_chord_shape(custom_shape, DEFAULT_LABEL),
                    built_in_index=index,
                    custom_id=custom_shape.id,
                )
                merged.put(index, entry)
                continue
            merged.appended.append(
                _ShapeEntry(_as_chord_shape(custom_shape, CUSTOM_LABEL), custom_id=custom_shape.id)
            )

        entries = merged.entries()
        selection = preferred.get(symbol)
        if selection is not None:
            position = next((i for i, entry in enumerate(entries) if _matches(entry, selection)), -1)
            if position > 0:
                entries.insert(0, entries.pop(position))

        result[symbol] = [entry.shape for entry in entries]

    return result
