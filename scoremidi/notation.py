"""Notation model: the already-parsed score items consumed by the converter."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

# ── Duration units ──────────────────────────────────────────────────────────
# Abstract note lengths; a quarter note is 96 units so that triplets and
# 64th notes stay integral.
WHOLE = 384
HALF = 192
QUARTER = 96
EIGHTH = 48
SIXTEENTH = 24
THIRTY_SECOND = 12
SIXTY_FOURTH = 6

SEMITONES_PER_OCTAVE = 12

#: Semitone offset of each natural note from C.
NATURAL_HEIGHTS: dict[str, int] = {
    "C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11,
}


class Accidental(Enum):
    """
    Accidental attached to a note or stored in a key signature.

    ``NONE`` means the note carries no explicit accidental and the running
    key decides. The enum value is the pitch offset in semitones.
    """

    NONE = None
    NATURAL = 0
    SHARP = 1
    FLAT = -1
    DOUBLE_SHARP = 2
    DOUBLE_FLAT = -2
    HALF_SHARP = 0.5
    HALF_FLAT = -0.5

    @property
    def is_in_the_key(self) -> bool:
        """True when the accidental is implied by the key rather than written."""
        return self is Accidental.NONE

    @property
    def nearest_value(self) -> int:
        """Semitone offset rounded away from zero (quarter tones become semitones)."""
        if self.value is None:
            return 0
        if self.value > 0:
            return int(self.value + 0.5)
        return -int(-self.value + 0.5)


# ── Notes and chords ────────────────────────────────────────────────────────

@dataclass(eq=False)
class Note:
    """
    A single note or rest.

    Notes compare by identity: tie partners are looked up by reference in the
    score, so two equal-looking notes are still distinct items.

    Attributes:
        pitch:                Letter name, ``"C"`` to ``"B"``.
        octave:               0 is the octave starting at middle C.
        accidental:           Written accidental, ``Accidental.NONE`` if none.
        duration:             Length in duration units (``QUARTER`` = 96).
        is_rest:              Rests advance time but never sound.
        octave_transposition: Extra octaves applied when sounding.
        is_beginning_tie:     This note starts a tie.
        is_ending_tie:        This note closes a tie and is never played itself.
        tied_to:              The note this one is tied to, if any.
        grace_notes:          Ornamental notes played right before this one.
    """

    pitch: str = "C"
    octave: int = 0
    accidental: Accidental = Accidental.NONE
    duration: int = QUARTER
    is_rest: bool = False
    octave_transposition: int = 0
    is_beginning_tie: bool = False
    is_ending_tie: bool = False
    tied_to: Note | None = None
    grace_notes: tuple[Note, ...] = ()

    def __post_init__(self) -> None:
        self.pitch = self.pitch.upper()
        if self.pitch not in NATURAL_HEIGHTS:
            raise ValueError(f"Invalid pitch letter: {self.pitch!r}. Must be one of A-G.")
        if self.duration < 0:
            raise ValueError(f"Invalid duration: {self.duration}. Must be >= 0.")
        self.grace_notes = tuple(self.grace_notes)

    @classmethod
    def rest(cls, duration: int = QUARTER) -> Note:
        return cls(duration=duration, is_rest=True)

    @property
    def strict_height(self) -> int:
        """Semitones from middle C, ignoring any accidental."""
        return NATURAL_HEIGHTS[self.pitch] + self.octave * SEMITONES_PER_OCTAVE

    @property
    def root_octave_height(self) -> int:
        """Height folded into the middle-C octave (0-11)."""
        return self.strict_height % SEMITONES_PER_OCTAVE

    @property
    def has_grace_notes(self) -> bool:
        return bool(self.grace_notes)

    def __repr__(self) -> str:
        if self.is_rest:
            return f"Note(rest, duration={self.duration})"
        return (
            f"Note({self.pitch}, octave={self.octave}, "
            f"accidental={self.accidental.name}, duration={self.duration})"
        )


def tie(first: Note, second: Note) -> None:
    """Link two consecutive notes into one sounding duration."""
    first.is_beginning_tie = True
    first.tied_to = second
    second.is_ending_tie = True


@dataclass(eq=False)
class Chord:
    """Simultaneous notes sharing one nominal duration."""

    notes: tuple[Note, ...]

    def __post_init__(self) -> None:
        self.notes = tuple(self.notes)

    def exclude_tie_endings(self) -> list[Note]:
        return [note for note in self.notes if not note.is_ending_tie]

    def shortest_note(self, notes: Iterable[Note] | None = None) -> Note | None:
        candidates = list(self.notes if notes is None else notes)
        if not candidates:
            return None
        return min(candidates, key=lambda note: note.duration)


# ── Bar lines ───────────────────────────────────────────────────────────────

class BarLineType(Enum):
    SIMPLE = "|"
    REPEAT_OPEN = "|:"
    REPEAT_CLOSE = ":|"
    REPEAT_CLOSE_OPEN = ":|:"


@dataclass(frozen=True)
class BarLine:
    """A bar line; every bar line starts a new measure."""

    type: BarLineType = BarLineType.SIMPLE


@dataclass(frozen=True)
class RepeatBarLine(BarLine):
    """
    Numbered-ending marker (``|1``, ``|2``, ``[1,3`` ...).

    Only the first listed pass number is used as the target iteration.
    """

    repeat_numbers: tuple[int, ...] = (1,)
    type: BarLineType = field(default=BarLineType.SIMPLE, kw_only=True)

    def __post_init__(self) -> None:
        object.__setattr__(self, "repeat_numbers", tuple(self.repeat_numbers))
        if not self.repeat_numbers:
            raise ValueError("A numbered ending needs at least one pass number.")

    @property
    def target(self) -> int:
        return self.repeat_numbers[0]


# ── Key signature ───────────────────────────────────────────────────────────

# Position of each tonic on the circle of fifths (C major = 0 sharps).
_TONIC_FIFTHS: dict[str, int] = {
    "F": -1, "C": 0, "G": 1, "D": 2, "A": 3, "E": 4, "B": 5,
}
_SHARP_ORDER = "FCGDAEB"
_FLAT_ORDER = "BEADGCF"

# Offset on the circle of fifths relative to the major (ionian) mode.
_MODE_FIFTHS: dict[str, int] = {
    "": 0, "maj": 0, "ion": 0,
    "m": -3, "min": -3, "aeo": -3,
    "dor": -2,
    "phr": -4,
    "lyd": 1,
    "mix": -1,
    "loc": -5,
}


class KeySignature:
    """
    Accidentals implied for each of the 12 pitch positions of an octave.

    Positions are indexed by natural height (C=0, D=2, ... B=11). A position
    not altered by the key holds ``Accidental.NATURAL``.
    """

    def __init__(self, accidentals: Iterable[Accidental] | None = None) -> None:
        if accidentals is None:
            self._accidentals = [Accidental.NATURAL] * SEMITONES_PER_OCTAVE
        else:
            self._accidentals = list(accidentals)
        if len(self._accidentals) != SEMITONES_PER_OCTAVE:
            raise ValueError(
                f"A key signature needs {SEMITONES_PER_OCTAVE} accidentals, "
                f"got {len(self._accidentals)}."
            )

    @classmethod
    def from_fifths(cls, fifths: int) -> KeySignature:
        """Build a key from its signed number of sharps (>0) or flats (<0)."""
        if not -7 <= fifths <= 7:
            raise ValueError(f"Invalid number of sharps/flats: {fifths}. Must be -7..7.")
        key = cls()
        if fifths > 0:
            for letter in _SHARP_ORDER[:fifths]:
                key.set_accidental(NATURAL_HEIGHTS[letter], Accidental.SHARP)
        else:
            for letter in _FLAT_ORDER[:-fifths]:
                key.set_accidental(NATURAL_HEIGHTS[letter], Accidental.FLAT)
        return key

    @classmethod
    def from_name(cls, name: str) -> KeySignature:
        """
        Build a key from a tonic and optional mode, e.g. ``"G"``, ``"Dm"``,
        ``"Bbmin"``, ``"F#"`` or ``"Ador"``.

        Raises:
            ValueError: If the tonic or mode is unknown, or the key would need
                more than seven sharps or flats.
        """
        text = name.strip()
        if not text or text[0].upper() not in _TONIC_FIFTHS:
            raise ValueError(f"Unknown key tonic in {name!r}.")
        fifths = _TONIC_FIFTHS[text[0].upper()]
        rest = text[1:]
        if rest.startswith("#"):
            fifths += 7
            rest = rest[1:]
        elif rest.startswith("b"):
            fifths -= 7
            rest = rest[1:]

        mode = rest.strip().lower()
        mode = mode if mode in ("", "m") else mode[:3]
        if mode not in _MODE_FIFTHS:
            raise ValueError(f"Unknown mode {rest!r} in key {name!r}.")
        return cls.from_fifths(fifths + _MODE_FIFTHS[mode])

    @property
    def accidentals(self) -> list[Accidental]:
        return list(self._accidentals)

    def accidental_for(self, height: int) -> Accidental:
        return self._accidentals[height % SEMITONES_PER_OCTAVE]

    def set_accidental(self, height: int, accidental: Accidental) -> None:
        self._accidentals[height % SEMITONES_PER_OCTAVE] = accidental

    def copy(self) -> KeySignature:
        return KeySignature(self._accidentals)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeySignature):
            return NotImplemented
        return self._accidentals == other._accidentals

    def __repr__(self) -> str:
        altered = {
            height: acc.name
            for height, acc in enumerate(self._accidentals)
            if acc is not Accidental.NATURAL
        }
        return f"KeySignature({altered})"


# ── Tempo ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Tempo:
    """
    Tempo marker: ``value`` beats of length ``reference`` per minute.

    ``Tempo(60, HALF)`` is "half note = 60", i.e. 120 quarter notes per minute.
    """

    value: float
    reference: int = QUARTER

    def __post_init__(self) -> None:
        if self.value <= 0:
            raise ValueError(f"Invalid tempo: {self.value}. Must be > 0.")
        if self.reference <= 0:
            raise ValueError(f"Invalid tempo reference: {self.reference}. Must be > 0.")

    @property
    def quarter_notes_per_minute(self) -> float:
        return self.value * self.reference / QUARTER


# ── Score ───────────────────────────────────────────────────────────────────

ScoreItem = Union[Note, Chord, BarLine, KeySignature, Tempo]


class Score(Sequence):
    """Ordered, read-only sequence of notation items."""

    def __init__(self, items: Iterable[ScoreItem] = ()) -> None:
        self._items: tuple[ScoreItem, ...] = tuple(items)

    def __getitem__(self, index):  # type: ignore[override]
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[ScoreItem]:
        return iter(self._items)

    def element_by_reference(self, reference: object) -> ScoreItem | None:
        """
        Return the item that *is* ``reference``, looking inside chords too.

        Returns ``None`` when the reference is not part of this score.
        """
        if reference is None:
            return None
        for item in self._items:
            if item is reference:
                return item
            if isinstance(item, Chord) and any(note is reference for note in item.notes):
                return reference  # type: ignore[return-value]
        return None

    def __repr__(self) -> str:
        return f"Score({len(self._items)} items)"
