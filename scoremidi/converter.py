"""ScoreConverter: walks a Score and turns it into a timestamped MIDI event track."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from scoremidi.durations import SEQUENCE_RESOLUTION, length_in_ticks, note_length_in_ticks
from scoremidi.encodings import SoundEncoding, StandardMidiEncoding
from scoremidi.errors import InvalidEventError
from scoremidi.events import EventEmitter, EventSink, EventTrack
from scoremidi.instruments import GeneralMidiBank, Instrument, InstrumentBank
from scoremidi.notation import (
    BarLine,
    BarLineType,
    Chord,
    KeySignature,
    Note,
    RepeatBarLine,
    Score,
    Tempo,
)
from scoremidi.pitch import update_key

logger = logging.getLogger(__name__)

NO_REPEAT_OPEN = -1


@dataclass
class RepeatState:
    """
    Repeat and numbered-ending bookkeeping of one traversal.

    Attributes:
        last_repeat_open: Score index of the active ``|:``, or -1.
        repeat_number:    Current pass through the active repeat, from 1.
        in_wrong_ending:  True while skipping an ending meant for another pass.
    """

    last_repeat_open: int = NO_REPEAT_OPEN
    repeat_number: int = 1
    in_wrong_ending: bool = False

    @property
    def has_open(self) -> bool:
        return self.last_repeat_open != NO_REPEAT_OPEN

    def _open(self, index: int) -> None:
        self.last_repeat_open = index
        self.repeat_number = 1

    def _rewind(self) -> int:
        self.repeat_number += 1
        return self.last_repeat_open

    def visit(self, bar: BarLine, index: int) -> int:
        """
        Update the state for the bar line found at ``index``.

        Returns:
            The index the cursor stands on afterwards: ``index`` itself, or
            the active ``|:`` when the bar line sends playback back. The
            caller advances by one either way, so playback resumes right
            after the opening bar line.
        """
        if isinstance(bar, RepeatBarLine):
            if self.repeat_number < bar.target and self.has_open:
                return self._rewind()
            # Only numbered endings switch ending skipping on or off.
            self.in_wrong_ending = self.repeat_number > bar.target
            return index

        if bar.type is BarLineType.REPEAT_OPEN:
            self._open(index)
        elif bar.type in (BarLineType.REPEAT_CLOSE, BarLineType.REPEAT_CLOSE_OPEN):
            if self.repeat_number < 2 and self.has_open:
                return self._rewind()
            if bar.type is BarLineType.REPEAT_CLOSE_OPEN:
                self._open(index)
            else:
                # Also reached by a close without any open: nothing to repeat.
                self.repeat_number = 1
                self.last_repeat_open = NO_REPEAT_OPEN
        return index


class ScoreConverter:
    """
    Converts a Score into an EventTrack in a single forward pass.

    The read cursor jumps back for repeats while the clock only ever moves
    forward, so repeated material is appended again later in time.

    Usage:

        converter = ScoreConverter(StandardMidiEncoding())
        track = converter.convert(score)
    """

    def __init__(
        self,
        encoding: SoundEncoding | None = None,
        instrument: Instrument | None = None,
        bank: InstrumentBank | None = None,
        resolution: int = SEQUENCE_RESOLUTION,
    ) -> None:
        """
        Args:
            encoding:   Strategy producing the MIDI payloads. Defaults to
                        StandardMidiEncoding.
            instrument: Instrument to play the score with. Defaults to the
                        first instrument of ``bank``.
            bank:       Where the instrument is loaded from. Defaults to
                        GeneralMidiBank.
            resolution: Ticks per quarter note of the produced track.
        """
        self.encoding = encoding if encoding is not None else StandardMidiEncoding()
        self.instrument = instrument
        self.bank = bank if bank is not None else GeneralMidiBank()
        self.resolution = resolution

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _load_instrument(self) -> Instrument:
        instrument = self.instrument if self.instrument is not None else self.bank.default()
        return self.bank.load(instrument)

    def _play_note(
        self,
        emitter: EventEmitter,
        note: Note,
        key: KeySignature | None,
        tick: int,
        duration: int,
    ) -> None:
        if note.is_rest or note.is_ending_tie:
            return
        emitter.note(note, key, tick, duration)
        update_key(key, note)

    def _play_chord(
        self,
        emitter: EventEmitter,
        chord: Chord,
        key: KeySignature | None,
        tick: int,
        duration: int,
    ) -> None:
        sounding = [note for note in chord.notes if not note.is_rest and not note.is_ending_tie]
        emitter.chord(sounding, key, tick, duration)
        for note in chord.notes:
            update_key(key, note)

    def _walk(self, score: Score, emitter: EventEmitter) -> None:
        state = RepeatState()
        tune_key: KeySignature | None = None
        current_key: KeySignature | None = None
        elapsed_time = 0

        i = 0
        while i < len(score):
            item = score[i]

            if not state.in_wrong_ending:
                if isinstance(item, Tempo):
                    emitter.tempo(elapsed_time, item)

                elif isinstance(item, KeySignature):
                    tune_key = item
                    current_key = tune_key.copy()

                # Tie endings were already counted in the length of the note
                # that starts the tie.
                elif isinstance(item, Note) and not item.is_ending_tie:
                    if item.has_grace_notes:
                        for grace in item.grace_notes:
                            duration = note_length_in_ticks(grace, score, self.resolution)
                            self._play_note(emitter, grace, current_key, elapsed_time, duration)
                            elapsed_time += duration
                    duration = length_in_ticks(item, score, self.resolution)
                    self._play_note(emitter, item, current_key, elapsed_time, duration)
                    elapsed_time += duration

                elif isinstance(item, Chord):
                    duration = length_in_ticks(item, score, self.resolution)
                    self._play_chord(emitter, item, current_key, elapsed_time, duration)
                    elapsed_time += duration

            if isinstance(item, BarLine):
                was_skipping = state.in_wrong_ending
                position = state.visit(item, i)
                if position != i:
                    logger.debug(
                        "Repeat at item %d: back to item %d for pass %d (tick %d)",
                        i, position, state.repeat_number, elapsed_time,
                    )
                    i = position
                elif state.in_wrong_ending and not was_skipping:
                    logger.debug("Skipping ending at item %d on pass %d", i, state.repeat_number)
                # Accidentals never carry over a bar line.
                current_key = tune_key.copy() if tune_key is not None else None

            i += 1

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def convert(self, score: Score, sink: EventSink | None = None) -> EventTrack:
        """
        Convert ``score`` into a complete event track.

        The track starts with a program change for the selected instrument at
        tick 0, followed by the events of every played item.

        Args:
            score: The parsed score to play.
            sink:  Optional extra destination. It receives the events only
                   once the whole score has converted.

        Returns:
            An EventTrack whose ticks use ``self.resolution`` per quarter note.

        Raises:
            InstrumentUnavailableError: If the instrument cannot be loaded.
                Nothing is converted in that case.
            InvalidEventError: If the encoding cannot build a message, e.g. a
                note outside the MIDI range. No partial track is returned and
                ``sink`` receives nothing.
        """
        instrument = self._load_instrument()

        track = EventTrack(resolution=self.resolution)
        emitter = EventEmitter(track, self.encoding)
        try:
            emitter.program_change(0, instrument)
            self._walk(score, emitter)
        except (ValueError, TypeError) as exc:
            logger.error("Conversion aborted: %s", exc)
            raise InvalidEventError(f"Could not build MIDI event: {exc}") from exc

        if sink is not None:
            for event in track:
                sink.append(event)

        logger.info(
            "Converted %d score items into %d events (%d ticks, instrument %s)",
            len(score), len(track), track.ticks, instrument.name,
        )
        return track
