"""Instrument selection: the program the converted sequence is played with."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from scoremidi.errors import InstrumentUnavailableError

logger = logging.getLogger(__name__)

#: General MIDI Level 1 program names, indexed by program number.
GENERAL_MIDI_PROGRAMS: tuple[str, ...] = (
    # Piano
    "Acoustic Grand Piano", "Bright Acoustic Piano", "Electric Grand Piano",
    "Honky-tonk Piano", "Electric Piano 1", "Electric Piano 2", "Harpsichord",
    "Clavinet",
    # Chromatic percussion
    "Celesta", "Glockenspiel", "Music Box", "Vibraphone", "Marimba", "Xylophone",
    "Tubular Bells", "Dulcimer",
    # Organ
    "Drawbar Organ", "Percussive Organ", "Rock Organ", "Church Organ",
    "Reed Organ", "Accordion", "Harmonica", "Tango Accordion",
    # Guitar
    "Acoustic Guitar (nylon)", "Acoustic Guitar (steel)",
    "Electric Guitar (jazz)", "Electric Guitar (clean)",
    "Electric Guitar (muted)", "Overdriven Guitar", "Distortion Guitar",
    "Guitar Harmonics",
    # Bass
    "Acoustic Bass", "Electric Bass (finger)", "Electric Bass (pick)",
    "Fretless Bass", "Slap Bass 1", "Slap Bass 2", "Synth Bass 1", "Synth Bass 2",
    # Strings
    "Violin", "Viola", "Cello", "Contrabass", "Tremolo Strings",
    "Pizzicato Strings", "Orchestral Harp", "Timpani",
    # Ensemble
    "String Ensemble 1", "String Ensemble 2", "Synth Strings 1",
    "Synth Strings 2", "Choir Aahs", "Voice Oohs", "Synth Voice",
    "Orchestra Hit",
    # Brass
    "Trumpet", "Trombone", "Tuba", "Muted Trumpet", "French Horn",
    "Brass Section", "Synth Brass 1", "Synth Brass 2",
    # Reed
    "Soprano Sax", "Alto Sax", "Tenor Sax", "Baritone Sax", "Oboe",
    "English Horn", "Bassoon", "Clarinet",
    # Pipe
    "Piccolo", "Flute", "Recorder", "Pan Flute", "Blown Bottle", "Shakuhachi",
    "Whistle", "Ocarina",
    # Synth lead
    "Lead 1 (square)", "Lead 2 (sawtooth)", "Lead 3 (calliope)",
    "Lead 4 (chiff)", "Lead 5 (charang)", "Lead 6 (voice)", "Lead 7 (fifths)",
    "Lead 8 (bass + lead)",
    # Synth pad
    "Pad 1 (new age)", "Pad 2 (warm)", "Pad 3 (polysynth)", "Pad 4 (choir)",
    "Pad 5 (bowed)", "Pad 6 (metallic)", "Pad 7 (halo)", "Pad 8 (sweep)",
    # Synth effects
    "FX 1 (rain)", "FX 2 (soundtrack)", "FX 3 (crystal)", "FX 4 (atmosphere)",
    "FX 5 (brightness)", "FX 6 (goblins)", "FX 7 (echoes)", "FX 8 (sci-fi)",
    # Ethnic
    "Sitar", "Banjo", "Shamisen", "Koto", "Kalimba", "Bagpipe", "Fiddle",
    "Shanai",
    # Percussive
    "Tinkle Bell", "Agogo", "Steel Drums", "Woodblock", "Taiko Drum",
    "Melodic Tom", "Synth Drum", "Reverse Cymbal",
    # Sound effects
    "Guitar Fret Noise", "Breath Noise", "Seashore", "Bird Tweet",
    "Telephone Ring", "Helicopter", "Applause", "Gunshot",
)


@dataclass(frozen=True)
class Instrument:
    """
    A playable instrument.

    Attributes:
        name:    Human-readable name, e.g. "Acoustic Grand Piano".
        program: MIDI program number (0-127) sent as a program change.
    """

    name: str
    program: int


# ── Abstract base ────────────────────────────────────────────────────────────

class InstrumentBank(ABC):
    """
    Source of instruments the converter may select from.

    Loading happens once, before a score is walked; a failure aborts the
    conversion before any event is produced.
    """

    @abstractmethod
    def available(self) -> list[Instrument]:
        """Return the instruments this bank can load, in program order."""

    @abstractmethod
    def load(self, instrument: Instrument) -> Instrument:
        """
        Make ``instrument`` ready for playback and return it.

        Raises:
            InstrumentUnavailableError: If the instrument cannot be loaded.
        """

    def default(self) -> Instrument:
        instruments = self.available()
        if not instruments:
            raise InstrumentUnavailableError("The instrument bank has no instruments.")
        return instruments[0]

    def find(self, query: str | int) -> Instrument:
        """
        Look up an instrument by program number or case-insensitive name.

        Raises:
            InstrumentUnavailableError: If nothing matches.
        """
        if isinstance(query, str) and query.strip().isdigit():
            query = int(query)
        for instrument in self.available():
            if isinstance(query, int):
                if instrument.program == query:
                    return instrument
            elif instrument.name.lower() == query.strip().lower():
                return instrument
        raise InstrumentUnavailableError(f"No instrument matches {query!r}.")


# ── Concrete bank ────────────────────────────────────────────────────────────

class GeneralMidiBank(InstrumentBank):
    """The 128 melodic programs of General MIDI Level 1."""

    def __init__(self) -> None:
        self._instruments = [
            Instrument(name=name, program=program)
            for program, name in enumerate(GENERAL_MIDI_PROGRAMS)
        ]

    def available(self) -> list[Instrument]:
        return list(self._instruments)

    def load(self, instrument: Instrument) -> Instrument:
        if not 0 <= instrument.program < len(self._instruments):
            raise InstrumentUnavailableError(
                f"Program {instrument.program} is outside the General MIDI range 0-127."
            )
        logger.debug("Loaded instrument %s (program %d)", instrument.name, instrument.program)
        return instrument
