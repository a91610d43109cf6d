"""SoundEncoding: Strategy pattern for turning notes and tempi into MIDI messages."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Union

import mido

from scoremidi.instruments import Instrument
from scoremidi.notation import KeySignature, Note, Tempo
from scoremidi.pitch import midi_note_number

MidiMessage = Union[mido.Message, mido.MetaMessage]


# ── Abstract base ────────────────────────────────────────────────────────────

class SoundEncoding(ABC):
    """
    Abstract Strategy for the payload of each sound event.

    The converter decides *when* things happen; an encoding decides which
    messages represent a note start, a note end and a tempo change. Each
    method may return several messages, or none.

    mido validates every message it builds, so an out-of-range note number or
    velocity surfaces as ``ValueError`` (or ``TypeError``) from these methods.
    """

    DEFAULT_VELOCITY = 64  # MIDI velocity for note-on events (0-127)

    def __init__(self, velocity: int = DEFAULT_VELOCITY, channel: int = 0) -> None:
        """
        Args:
            velocity: Note-on velocity for every sounding note.
            channel:  MIDI channel (0-15) all messages are sent on.
        """
        self.velocity = velocity
        self.channel = channel

    @abstractmethod
    def note_on_messages(self, note: Note, key: KeySignature | None) -> list[MidiMessage]:
        """Messages that start ``note`` in the context of the running ``key``."""

    @abstractmethod
    def note_off_messages(self, note: Note, key: KeySignature | None) -> list[MidiMessage]:
        """Messages that stop ``note``; must release the pitch started by note-on."""

    @abstractmethod
    def tempo_messages(self, tempo: Tempo) -> list[MidiMessage]:
        """Messages announcing a tempo change."""

    def program_change_messages(self, instrument: Instrument) -> list[MidiMessage]:
        return [mido.Message("program_change", channel=self.channel, program=instrument.program)]


# ── Concrete strategies ──────────────────────────────────────────────────────

class StandardMidiEncoding(SoundEncoding):
    """
    Plain General MIDI encoding.

    Note-on with the configured velocity, an explicit ``note_off`` message,
    and a ``set_tempo`` meta message in microseconds per quarter note.
    """

    def note_on_messages(self, note: Note, key: KeySignature | None) -> list[MidiMessage]:
        return [
            mido.Message(
                "note_on",
                channel=self.channel,
                note=midi_note_number(note, key),
                velocity=self.velocity,
            )
        ]

    def note_off_messages(self, note: Note, key: KeySignature | None) -> list[MidiMessage]:
        return [
            mido.Message(
                "note_off",
                channel=self.channel,
                note=midi_note_number(note, key),
                velocity=0,
            )
        ]

    def tempo_messages(self, tempo: Tempo) -> list[MidiMessage]:
        return [mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(tempo.quarter_notes_per_minute))]


class ZeroVelocityNoteOffEncoding(StandardMidiEncoding):
    """
    Encoding that releases notes with ``note_on`` at velocity 0.

    Equivalent to a note-off for every General MIDI device, and it keeps the
    status byte unchanged so running status can compress the stream.
    """

    def note_off_messages(self, note: Note, key: KeySignature | None) -> list[MidiMessage]:
        return [
            mido.Message(
                "note_on",
                channel=self.channel,
                note=midi_note_number(note, key),
                velocity=0,
            )
        ]


ENCODINGS: dict[str, type[SoundEncoding]] = {
    "standard": StandardMidiEncoding,
    "zero-velocity": ZeroVelocityNoteOffEncoding,
}


def get_encoding(name: str, **kwargs: int) -> SoundEncoding:
    """
    Return the SoundEncoding registered under ``name``.

    Raises:
        ValueError: If no encoding has that name.
    """
    try:
        encoding_class = ENCODINGS[name.strip().lower()]
    except KeyError:
        supported = ", ".join(sorted(ENCODINGS))
        raise ValueError(f"Unsupported encoding '{name}'. Use one of: {supported}.") from None
    return encoding_class(**kwargs)
