"""Event stream: timestamped MIDI events and the emitter that appends them."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum

from scoremidi.durations import SEQUENCE_RESOLUTION
from scoremidi.encodings import MidiMessage, SoundEncoding
from scoremidi.instruments import Instrument
from scoremidi.notation import KeySignature, Note, Tempo


class EventKind(Enum):
    NOTE_ON = "note_on"
    NOTE_OFF = "note_off"
    TEMPO = "tempo"
    PROGRAM_CHANGE = "program_change"


@dataclass(frozen=True)
class MidiEvent:
    """
    One message at an absolute position of the sequence.

    Attributes:
        tick:    Absolute time in ticks from the start of the sequence.
        kind:    What the event does, independent of how it is encoded.
        message: The encoded mido message.
    """

    tick: int
    kind: EventKind
    message: MidiMessage


# ── Sinks ────────────────────────────────────────────────────────────────────

class EventSink(ABC):
    """Append-only destination for converted events."""

    @abstractmethod
    def append(self, event: MidiEvent) -> None:
        """Add ``event``; events are never modified or removed afterwards."""


class EventTrack(EventSink):
    """
    In-memory event list, in the order events were appended.

    Note-offs of a note are appended right after its note-on, so the list is
    not globally sorted by tick; use ``sorted_events()`` for playback order.
    """

    def __init__(self, resolution: int = SEQUENCE_RESOLUTION) -> None:
        self.resolution = resolution
        self._events: list[MidiEvent] = []

    def append(self, event: MidiEvent) -> None:
        self._events.append(event)

    @property
    def events(self) -> list[MidiEvent]:
        return list(self._events)

    @property
    def ticks(self) -> int:
        """Length of the track: the tick of its latest event."""
        return max((event.tick for event in self._events), default=0)

    def of_kind(self, kind: EventKind) -> list[MidiEvent]:
        return [event for event in self._events if event.kind is kind]

    def sorted_events(self) -> list[MidiEvent]:
        return sorted(self._events, key=lambda event: event.tick)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[MidiEvent]:
        return iter(self._events)


# ── Emitter ──────────────────────────────────────────────────────────────────

class EventEmitter:
    """
    Timestamps encoded messages and appends them to a sink.

    Every note-on is paired with note-off messages at ``tick + duration``.
    The emitter never sorts or rewrites what it has already appended.
    """

    def __init__(self, sink: EventSink, encoding: SoundEncoding) -> None:
        self.sink = sink
        self.encoding = encoding

    def _append_all(self, tick: int, kind: EventKind, messages: Iterable[MidiMessage]) -> None:
        for message in messages:
            self.sink.append(MidiEvent(tick=tick, kind=kind, message=message))

    def program_change(self, tick: int, instrument: Instrument) -> None:
        self._append_all(tick, EventKind.PROGRAM_CHANGE, self.encoding.program_change_messages(instrument))

    def tempo(self, tick: int, tempo: Tempo) -> None:
        self._append_all(tick, EventKind.TEMPO, self.encoding.tempo_messages(tempo))

    def note_on(self, tick: int, note: Note, key: KeySignature | None) -> None:
        self._append_all(tick, EventKind.NOTE_ON, self.encoding.note_on_messages(note, key))

    def note_off(self, tick: int, note: Note, key: KeySignature | None) -> None:
        self._append_all(tick, EventKind.NOTE_OFF, self.encoding.note_off_messages(note, key))

    def note(self, note: Note, key: KeySignature | None, tick: int, duration: int) -> None:
        self.note_on(tick, note, key)
        self.note_off(tick + duration, note, key)

    def chord(self, notes: Iterable[Note], key: KeySignature | None, tick: int, duration: int) -> None:
        """All note-ons at ``tick``, then all note-offs at ``tick + duration``."""
        notes = list(notes)
        for note in notes:
            self.note_on(tick, note, key)
        for note in notes:
            self.note_off(tick + duration, note, key)
