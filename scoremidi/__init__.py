"""scoremidi: converts parsed music scores into timestamped MIDI event sequences."""

from scoremidi.converter import ScoreConverter
from scoremidi.encodings import SoundEncoding, StandardMidiEncoding, ZeroVelocityNoteOffEncoding
from scoremidi.errors import ConversionError, InstrumentUnavailableError, InvalidEventError
from scoremidi.events import EventKind, EventTrack, MidiEvent

__version__ = "0.1.0"

__all__ = [
    "ConversionError",
    "EventKind",
    "EventTrack",
    "InstrumentUnavailableError",
    "InvalidEventError",
    "MidiEvent",
    "ScoreConverter",
    "SoundEncoding",
    "StandardMidiEncoding",
    "ZeroVelocityNoteOffEncoding",
]
