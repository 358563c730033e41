"""Ultimate Guitar tab payloads → :class:`~songsheet.models.Song`.

Fetching is done elsewhere; this module starts from the JSON object the UG
``tab/info`` API returns:

    .id                          → tab id
    .song_name                   → Song.title
    .artist_name                 → Song.artist
    .tonality_name               → Song.default_key
    .recording.tonality_name     → Song.default_key (fallback)
    .capo                        → Song.capo (positive values only)
    .content                     → raw tab text
    .urlWeb                      → Song.source_url

The tab text uses ``[ch]D[/ch]`` for chords (unwrapped, see
:func:`normalize_content`) and may wrap chord+lyric pairs in
``[tab]...[/tab]`` (removed).  What remains is parsed exactly like pasted
text.
"""

import logging
import re
from typing import Any
from urllib.parse import urlsplit

from ..content import build_song_id, parse_content
from ..exceptions import IncompleteTabError, TabIdError
from ..models import Song

logger = logging.getLogger(__name__)

DEFAULT_KEY = "C"

_CH_TAG_RE = re.compile(r"\[ch\]([^\[]+?)\[/ch\]", re.IGNORECASE)
_TAB_TAG_RE = re.compile(r"\[/?tab\]", re.IGNORECASE)
_EXTRA_BLANKS_RE = re.compile(r"\n{3,}")
# Tab ids are at least five digits; shorter numbers in a URL are usually
# part of the song slug.
_TAB_ID_RE = re.compile(r"(\d{5,})")


def normalize_content(text: str) -> str:
    """Strip UG-specific markup from tab content.

    - ``\\r\\n`` / ``\\r`` → ``\\n``
    - ``[tab]`` / ``[/tab]`` → removed
    - ``[ch]D[/ch]`` → ``D`` on chord-only lines (columns line up once the
      tags are gone), ``[D]`` inline everywhere else
    - three or more newlines → one blank line
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _TAB_TAG_RE.sub("", text)
    text = "\n".join(_strip_chord_tags(line) for line in text.split("\n"))
    text = _EXTRA_BLANKS_RE.sub("\n\n", text)
    return text.rstrip()


def _strip_chord_tags(line: str) -> str:
    if _CH_TAG_RE.search(line) and not _CH_TAG_RE.sub("", line).strip():
        return _CH_TAG_RE.sub(r"\1", line)
    return _CH_TAG_RE.sub(r"[\1]", line)


def extract_tab_id(source: str) -> int:
    """Return the tab id from a tab URL or a bare id.

    Raises TabIdError when *source* is blank or holds no id.
    """
    trimmed = source.strip()
    if not trimmed:
        raise TabIdError(source)
    if trimmed.isdigit():
        return int(trimmed)

    parts = urlsplit(trimmed)
    if parts.scheme and parts.netloc:
        from_path = _TAB_ID_RE.search(parts.path)
        if from_path:
            return int(from_path.group(1))

    fallback = _TAB_ID_RE.search(trimmed)
    if fallback:
        return int(fallback.group(1))
    raise TabIdError(source)


def resolve_default_key(tab: dict[str, Any]) -> str:
    """The tab's key, falling back to the recording's key, then ``"C"``."""
    recording = tab.get("recording") or {}
    for candidate in (tab.get("tonality_name"), recording.get("tonality_name")):
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return DEFAULT_KEY


def _resolve_capo(tab: dict[str, Any]) -> int | None:
    capo = tab.get("capo")
    if isinstance(capo, bool) or not isinstance(capo, (int, float)):
        return None
    return int(capo) if capo > 0 else None


def song_from_tab(tab: dict[str, Any], source_url: str | None = None) -> Song:
    """Build a :class:`~songsheet.models.Song` from a UG tab payload.

    Args:
        tab:        The decoded ``tab/info`` JSON object.
        source_url: Page the tab came from; defaults to the payload's
                    ``urlWeb``.  Must hold a tab id.

    Raises:
        TabIdError:         *source_url* is given but holds no tab id.
        IncompleteTabError: title, artist or content is missing.
    """
    if source_url is not None:
        tab_id = extract_tab_id(source_url)
        if tab.get("id") is not None and tab.get("id") != tab_id:
            logger.warning("%s is tab %d but the payload is tab %s", source_url, tab_id, tab.get("id"))

    title = tab.get("song_name") or ""
    artist = tab.get("artist_name") or ""
    content = tab.get("content") or ""
    missing = [name for name, value in (("song_name", title), ("artist_name", artist), ("content", content)) if not value]
    if missing:
        raise IncompleteTabError(f"missing {', '.join(missing)}")

    lines = parse_content(normalize_content(content))
    logger.debug("Imported UG tab %s: %r by %r, %d lines", tab.get("id"), title, artist, len(lines))

    return Song(
        id=build_song_id(title, artist),
        title=title,
        artist=artist,
        default_key=resolve_default_key(tab),
        lines=lines,
        capo=_resolve_capo(tab),
        source_url=source_url or tab.get("urlWeb"),
    )
