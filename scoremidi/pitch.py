"""Pitch resolution: notated pitch plus running key to a MIDI note number."""

from __future__ import annotations

from scoremidi.notation import NATURAL_HEIGHTS, SEMITONES_PER_OCTAVE, KeySignature, Note

# ── MIDI constants ──────────────────────────────────────────────────────────
A4_MIDI = 69  # Concert A (440 Hz), the reference pitch
MIDDLE_C_MIDI = A4_MIDI - NATURAL_HEIGHTS["A"]  # 60


def midi_note_number(note: Note, key: KeySignature | None) -> int:
    """
    Return the MIDI note number of ``note`` in the context of ``key``.

    A written accidental wins. Without one, the running key supplies the
    accidental for the note's pitch position; before any key has been
    declared the note is natural. Microtonal accidentals are rounded to the
    nearest semitone.

    Args:
        note: The note to sound.
        key:  The running key signature, or ``None``.

    Returns:
        MIDI note number. It is not range-checked here; the encoding rejects
        values outside 0-127.
    """
    number = note.strict_height + MIDDLE_C_MIDI
    number += note.octave_transposition * SEMITONES_PER_OCTAVE
    if note.accidental.is_in_the_key:
        if key is not None:
            number += key.accidental_for(note.root_octave_height).nearest_value
    else:
        number += note.accidental.nearest_value
    return number


def update_key(key: KeySignature | None, note: Note) -> None:
    """
    Carry a written accidental over to later notes of the same measure.

    The running key is reset from the declared key at every bar line, so the
    change lasts until the end of the current measure.
    """
    if key is None or note.accidental.is_in_the_key:
        return
    key.set_accidental(note.root_octave_height, note.accidental)
