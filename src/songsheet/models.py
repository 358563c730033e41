from dataclasses import dataclass, field
from typing import Any

from .exceptions import SongRecordError


@dataclass(frozen=True)
class Section:
    """A section heading (verse, chorus, bridge, etc.)."""

    label: str


@dataclass(frozen=True)
class Line:
    """A lyric line, optionally with the chord-guide line that sat above it.

    ``content`` may carry inline chords (``"I [D]pulled into [G]Nazareth"``).
    ``chords`` is the raw guide text, column-aligned with ``content``:

        chords  = "  D                G"
        content = "I pulled into Nazareth"

    A guide line with no lyric under it is stored with ``content=""``.
    """

    content: str
    chords: str | None = None


@dataclass(frozen=True)
class Spacer:
    """A blank line between blocks."""


SongLine = Section | Line | Spacer


@dataclass(frozen=True)
class LyricSegment:
    """A lyric fragment, optionally starting with a chord change."""

    lyric: str
    chord: str | None = None


@dataclass
class Song:
    """A stored song: metadata plus its line body."""

    id: str
    title: str
    artist: str
    default_key: str
    lines: list[SongLine] = field(default_factory=list)
    capo: int | None = None
    source_url: str | None = None  # e.g. the Ultimate Guitar tab page
    type: str | None = None  # "chords" when unset
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Persisted record form (the shape the storage layer reads and writes)."""
        record: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "defaultKey": self.default_key,
            "lines": [line_to_dict(line) for line in self.lines],
        }
        if self.capo is not None:
            record["capo"] = self.capo
        if self.source_url:
            record["ugUrl"] = self.source_url
        if self.type:
            record["type"] = self.type
        if self.tags:
            record["tags"] = list(self.tags)
        return record

    @classmethod
    def from_dict(cls, record: dict[str, Any]) -> "Song":
        """Build a song from its persisted record.

        Raises SongRecordError when a required field is missing or malformed.
        """
        try:
            song_id, title, artist = record["id"], record["title"], record["artist"]
            raw_lines = record.get("lines", [])
        except (KeyError, TypeError) as exc:
            raise SongRecordError(f"missing field {exc}") from exc
        if not isinstance(raw_lines, list):
            raise SongRecordError(f"lines must be a list, got {raw_lines!r}")

        capo = record.get("capo")
        if capo is not None and (isinstance(capo, bool) or not isinstance(capo, int) or capo <= 0):
            raise SongRecordError(f"capo must be a positive integer, got {capo!r}")

        return cls(
            id=song_id,
            title=title,
            artist=artist,
            default_key=record.get("defaultKey") or "C",
            lines=[line_from_dict(raw) for raw in raw_lines],
            capo=capo,
            source_url=record.get("ugUrl"),
            type=record.get("type"),
            tags=list(record.get("tags") or []),
        )


def line_to_dict(line: SongLine) -> dict[str, Any]:
    if isinstance(line, Section):
        return {"type": "section", "label": line.label}
    if isinstance(line, Spacer):
        return {"type": "spacer"}
    record: dict[str, Any] = {"type": "line", "content": line.content}
    if line.chords is not None:
        record["chords"] = line.chords
    return record


def line_from_dict(record: dict[str, Any]) -> SongLine:
    kind = record.get("type") if isinstance(record, dict) else None
    if kind == "section":
        return Section(label=record.get("label") or "Section")
    if kind == "spacer":
        return Spacer()
    if kind == "line":
        content, chords = record.get("content", ""), record.get("chords")
        if not isinstance(content, str) or not (chords is None or isinstance(chords, str)):
            raise SongRecordError(f"line content and chords must be text in {record!r}")
        return Line(content=content, chords=chords)
    raise SongRecordError(f"unknown line record {record!r}")
