import json
import logging
import sys

import click

from .chords import parse_chord, transpose_chord
from .content import build_song_id, parse_content
from .exceptions import SongsheetError
from .importers.ultimate_guitar import song_from_tab
from .models import Song
from .render import SongSheetFormatter
from .shapes import diagram_start_fret, format_frets, get_chord_shapes

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
_TRANSPOSE = click.IntRange(-11, 11)


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _echo_song(song: Song) -> None:
    click.echo(json.dumps(song.to_dict(), indent=2, ensure_ascii=False))


def _song_from_text(text: str, title: str, artist: str, key: str, capo: int | None) -> Song:
    return Song(
        id=build_song_id(title, artist),
        title=title,
        artist=artist,
        default_key=key,
        lines=parse_content(text),
        capo=capo,
    )


def _load_json(stream) -> dict:
    name = getattr(stream, "name", "input")
    try:
        data = json.load(stream)
    except json.JSONDecodeError as exc:
        _fail(f"{name} is not valid JSON ({exc.msg}, line {exc.lineno})")
    if not isinstance(data, dict):
        _fail(f"{name} must hold a JSON object")
    return data


def song_options(func):
    """Metadata options shared by commands that read raw song text."""
    func = click.option("--capo", type=click.IntRange(min=1), default=None, help="Capo fret.")(func)
    func = click.option("--key", default="C", show_default=True, help="Default key of the song.")(func)
    func = click.option("--artist", default="Unknown", show_default=True)(func)
    func = click.option("--title", default="Untitled", show_default=True)(func)
    return func


@click.group(context_settings={"auto_envvar_prefix": "SONGSHEET"})
@click.option("--log-level", type=click.Choice(_LOG_LEVELS, case_sensitive=False), default="WARNING",
              show_default=True, help="Logging level for messages on stderr.")
def main(log_level: str) -> None:
    """Parse, transpose and render chord sheets.

    \b
    Song text may use chord-guide lines (chords above lyrics) or inline
    [Chord] markup.  Every option can also be set from the environment,
    e.g. SONGSHEET_LOG_LEVEL or SONGSHEET_RENDER_TRANSPOSE.
    """
    logging.basicConfig(
        level=log_level.upper(),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@main.command()
@click.argument("source", type=click.File("r", encoding="utf-8"))
@song_options
def parse(source, title: str, artist: str, key: str, capo: int | None) -> None:
    """Parse song text into a song record (JSON)."""
    _echo_song(_song_from_text(source.read(), title, artist, key, capo))


@main.command()
@click.argument("source", type=click.File("r", encoding="utf-8"))
@click.option("-t", "--transpose", type=_TRANSPOSE, default=0, show_default=True,
              help="Semitones to transpose by.")
@click.option("--record", is_flag=True, default=False,
              help="SOURCE is a song record (JSON) rather than song text.")
@song_options
def render(source, transpose: int, record: bool, title: str, artist: str, key: str, capo: int | None) -> None:
    """Print a chord sheet, optionally transposed."""
    if record:
        try:
            song = Song.from_dict(_load_json(source))
        except SongsheetError as exc:
            _fail(str(exc))
    else:
        song = _song_from_text(source.read(), title, artist, key, capo)
    click.echo(SongSheetFormatter().render(song, transpose), nl=False)


@main.command()
@click.argument("symbol")
@click.option("-t", "--transpose", type=_TRANSPOSE, default=0, show_default=True,
              help="Semitones to transpose by.")
def chord(symbol: str, transpose: int) -> None:
    """Show a chord's quality and guitar shapes."""
    transposed = transpose_chord(symbol, transpose)
    parsed = parse_chord(transposed)
    if parsed is None:
        _fail(f"{symbol!r} is not a chord")

    click.echo(f"{transposed} ({parsed.quality.value})")
    shapes = get_chord_shapes(transposed)
    if not shapes:
        click.echo("No diagram available")
        return
    for number, shape in enumerate(shapes, start=1):
        position = "open" if shape.is_open else f"{diagram_start_fret(shape)}fr"
        click.echo(f"  {number}. {format_frets(shape)} ({position})")


@main.command("import-ug")
@click.argument("source", type=click.File("r", encoding="utf-8"))
@click.option("--url", default=None, help="Page the tab was taken from; must hold its tab id.")
def import_ug(source, url: str | None) -> None:
    """Convert a saved Ultimate Guitar tab payload (JSON) to a song record."""
    payload = _load_json(source)
    try:
        song = song_from_tab(payload, source_url=url)
    except SongsheetError as exc:
        _fail(str(exc))
    _echo_song(song)
