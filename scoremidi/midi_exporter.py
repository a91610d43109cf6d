"""MidiExporter: Writes a converted EventTrack to a Standard MIDI File."""

from __future__ import annotations

import logging
from collections import defaultdict, deque

import mido
from midiutil import MIDIFile

from scoremidi.events import EventKind, EventTrack

logger = logging.getLogger(__name__)

# In midiutil Format 1 MIDI, tempo events always go to the conductor track it
# adds in front of the user tracks; user track numbers start at 0 after it.
TRACK_CONDUCTOR = 0  # Tempo only; never receives notes
TRACK_MUSIC = 0      # Program change and notes, written as file track 1


class MidiExporter:
    """
    Writes an EventTrack as a two-track MIDI file.

    Track layout (Format 1)
    -----------------------
    Track 0: conductor track (tempo changes only)

    Track 1: the instrument's program change followed by every note.

    Timing
    ------
    Event ticks are written as-is; the file's resolution is the track's
    ``resolution`` ticks per quarter note.

    midiutil takes notes as (start, duration) rather than separate on/off
    messages, so each note-off is matched with the earliest still-sounding
    note-on of the same channel and pitch.
    """

    def __init__(self, track_name: str = "Score") -> None:
        """
        Args:
            track_name: Name written to the music track.
        """
        self.track_name = track_name

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build(self, track: EventTrack) -> MIDIFile:
        midi = MIDIFile(
            numTracks=1,
            removeDuplicates=False,
            deinterleave=False,
            ticks_per_quarternote=track.resolution,
            eventtime_is_ticks=True,
        )
        midi.addTrackName(TRACK_MUSIC, 0, self.track_name)

        sounding: dict[tuple[int, int], deque[tuple[int, int]]] = defaultdict(deque)
        for event in track:
            message = event.message
            if event.kind is EventKind.TEMPO:
                if message.type == "set_tempo":
                    midi.addTempo(TRACK_CONDUCTOR, event.tick, mido.tempo2bpm(message.tempo))
            elif event.kind is EventKind.PROGRAM_CHANGE:
                midi.addProgramChange(TRACK_MUSIC, message.channel, event.tick, message.program)
            elif event.kind is EventKind.NOTE_ON:
                sounding[(message.channel, message.note)].append((event.tick, message.velocity))
            elif event.kind is EventKind.NOTE_OFF:
                pending = sounding.get((message.channel, message.note))
                if not pending:
                    logger.warning("Note-off without note-on for pitch %d at tick %d", message.note, event.tick)
                    continue
                start, velocity = pending.popleft()
                midi.addNote(
                    track=TRACK_MUSIC,
                    channel=message.channel,
                    pitch=message.note,
                    time=start,
                    duration=event.tick - start,
                    volume=velocity,
                )

        unmatched = sum(len(pending) for pending in sounding.values())
        if unmatched:
            logger.warning("%d note-on event(s) were never released and are dropped", unmatched)
        return midi

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def export(self, track: EventTrack, output_path: str) -> None:
        """
        Render ``track`` to a Standard MIDI File (SMF format 1, conductor + 1 track).

        Args:
            track:       Converted events, as returned by ScoreConverter.
            output_path: Destination file path (e.g. "output.mid").

        Raises:
            OSError: If the output file cannot be opened for writing.
        """
        midi = self._build(track)
        with open(output_path, "wb") as f:
            midi.writeFile(f)
        logger.info("Wrote %d events to %s", len(track), output_path)
