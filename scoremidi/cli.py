"""scoremidi CLI entry point."""

import logging
import sys
from pathlib import Path

import click

from scoremidi import __version__
from scoremidi.converter import ScoreConverter
from scoremidi.encodings import ENCODINGS, SoundEncoding, get_encoding
from scoremidi.errors import ConversionError, ScoreFormatError
from scoremidi.events import EventTrack
from scoremidi.instruments import GeneralMidiBank
from scoremidi.midi_exporter import MidiExporter
from scoremidi.notation import Score
from scoremidi.score_loader import load_score


def _setup_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def _load(score_file: str) -> Score:
    try:
        return load_score(score_file)
    except ScoreFormatError as exc:
        click.echo(f"  ERROR: Invalid score — {exc}", err=True)
        sys.exit(1)


def _convert(score: Score, encoding: SoundEncoding, instrument: str | None) -> EventTrack:
    bank = GeneralMidiBank()
    try:
        selected = bank.find(instrument) if instrument is not None else None
        return ScoreConverter(encoding, instrument=selected, bank=bank).convert(score)
    except ConversionError as exc:
        click.echo(f"  ERROR: Could not convert score — {exc}", err=True)
        sys.exit(1)


# ── Shared options ─────────────────────────────────────────────────────────────

_encoding_option = click.option(
    "--encoding",
    type=click.Choice(sorted(ENCODINGS), case_sensitive=False),
    default="standard",
    show_default=True,
    help="How note-offs and tempi are encoded.",
)
_instrument_option = click.option(
    "--instrument",
    "-i",
    default=None,
    metavar="NAME|PROGRAM",
    help="General MIDI instrument name or program number. Defaults to program 0.",
)
_velocity_option = click.option(
    "--velocity",
    type=click.IntRange(1, 127),
    default=SoundEncoding.DEFAULT_VELOCITY,
    show_default=True,
    help="Note-on velocity.",
)


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="scoremidi")
@click.option("--verbose", "-v", count=True, help="Log progress (-v) or debug output (-vv).")
def main(verbose: int) -> None:
    """scoremidi: convert parsed scores into MIDI event sequences."""
    _setup_logging(verbose)


# ── convert subcommand ─────────────────────────────────────────────────────────

@main.command()
@click.argument("score_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination MIDI file path. Defaults to the score path with a .mid extension.",
)
@_encoding_option
@_instrument_option
@_velocity_option
def convert(
    score_file: str,
    output: str | None,
    encoding: str,
    instrument: str | None,
    velocity: int,
) -> None:
    """
    Convert a JSON score document into a MIDI file.

    \b
    Examples:
      scoremidi convert tune.json
      scoremidi convert tune.json -o tune.mid --instrument Violin
      scoremidi convert tune.json --encoding zero-velocity --velocity 90
    """
    resolved_output = output if output is not None else str(Path(score_file).with_suffix(".mid"))

    click.echo(f"scoremidi v{__version__}")
    click.echo(f"  Score    : {score_file}")
    click.echo(f"  Encoding : {encoding}")
    click.echo(f"  Output   : {resolved_output}")
    click.echo()

    click.echo("[1/3] Loading score...")
    score = _load(score_file)
    click.echo(f"      {len(score)} item(s)")

    click.echo("[2/3] Converting to MIDI events...")
    track = _convert(score, get_encoding(encoding, velocity=velocity), instrument)
    click.echo(f"      {len(track)} event(s), {track.ticks} tick(s)")

    click.echo(f"[3/3] Writing MIDI file → '{resolved_output}'...")
    try:
        MidiExporter(track_name=Path(score_file).stem).export(track, resolved_output)
    except OSError as exc:
        click.echo(f"  ERROR: Could not write MIDI file — {exc}", err=True)
        sys.exit(1)

    click.echo()
    click.echo(f"Done!  Open '{resolved_output}' in any MIDI player.")


# ── events subcommand ──────────────────────────────────────────────────────────

@main.command()
@click.argument("score_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@_encoding_option
@_instrument_option
@_velocity_option
def events(score_file: str, encoding: str, instrument: str | None, velocity: int) -> None:
    """
    Print the converted event stream of a JSON score document, in tick order.
    """
    score = _load(score_file)
    track = _convert(score, get_encoding(encoding, velocity=velocity), instrument)
    for event in track.sorted_events():
        click.echo(f"{event.tick:8d}  {event.kind.value:<14}  {event.message}")
