"""Duration resolution: note and chord lengths in sequence ticks."""

from __future__ import annotations

from scoremidi.notation import QUARTER, Chord, Note, Score

#: Ticks per quarter note of the generated sequence.
SEQUENCE_RESOLUTION = QUARTER


def units_to_ticks(units: int, resolution: int = SEQUENCE_RESOLUTION) -> int:
    """Convert duration units (``QUARTER`` = one quarter note) to ticks."""
    return resolution * units // QUARTER


def note_length_in_ticks(note: Note, score: Score, resolution: int = SEQUENCE_RESOLUTION) -> int:
    """
    Return the sounding length of ``note`` in ticks.

    A note beginning a tie also sounds for the length of its partner, provided
    the partner belongs to ``score``. Only one hop is followed: the partner's
    own forward tie is never played (it is a tie ending), so chaining further
    would count it twice.
    """
    units = note.duration
    if note.is_beginning_tie and note.tied_to is not None:
        partner = score.element_by_reference(note.tied_to)
        if isinstance(partner, Note):
            units += partner.duration
    return units_to_ticks(units, resolution)


def chord_length_in_ticks(chord: Chord, score: Score, resolution: int = SEQUENCE_RESOLUTION) -> int:
    """
    Return the length of ``chord`` in ticks.

    Notes closing a tie are ignored; the shortest remaining note stands for
    the whole chord. A chord made only of tie endings has length 0.
    """
    representative = chord.shortest_note(chord.exclude_tie_endings())
    if representative is None:
        return 0
    return note_length_in_ticks(representative, score, resolution)


def length_in_ticks(item: Note | Chord, score: Score, resolution: int = SEQUENCE_RESOLUTION) -> int:
    if isinstance(item, Chord):
        return chord_length_in_ticks(item, score, resolution)
    return note_length_in_ticks(item, score, resolution)
