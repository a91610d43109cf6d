"""Score loader: builds a Score from a JSON document of already-parsed items.

This is not a notation parser. The document lists score items one by one::

    {
      "items": [
        {"type": "key", "name": "G"},
        {"type": "tempo", "value": 120},
        {"type": "bar", "bar": "|:"},
        {"type": "note", "pitch": "F", "duration": "1/4"},
        {"type": "note", "pitch": "C", "octave": 1, "accidental": "sharp",
         "duration": "1/8", "tie": "start"},
        {"type": "note", "pitch": "C", "octave": 1, "duration": "1/8", "tie": "end"},
        {"type": "chord", "notes": [{"pitch": "G"}, {"pitch": "B"}]},
        {"type": "ending", "numbers": [1]},
        {"type": "rest", "duration": 96},
        {"type": "bar", "bar": ":|"}
      ]
    }

Durations are either integer units (a quarter note is 96) or a fraction of a
whole note such as ``"3/8"``.
"""

from __future__ import annotations

import json
from fractions import Fraction
from pathlib import Path
from typing import Any

from scoremidi.errors import ScoreFormatError
from scoremidi.notation import (
    QUARTER,
    WHOLE,
    Accidental,
    BarLine,
    BarLineType,
    Chord,
    KeySignature,
    Note,
    RepeatBarLine,
    Score,
    ScoreItem,
    Tempo,
    tie,
)

_ACCIDENTALS: dict[str, Accidental] = {
    "natural": Accidental.NATURAL,
    "sharp": Accidental.SHARP,
    "flat": Accidental.FLAT,
    "double-sharp": Accidental.DOUBLE_SHARP,
    "double-flat": Accidental.DOUBLE_FLAT,
    "half-sharp": Accidental.HALF_SHARP,
    "half-flat": Accidental.HALF_FLAT,
    "=": Accidental.NATURAL,
    "^": Accidental.SHARP,
    "_": Accidental.FLAT,
    "^^": Accidental.DOUBLE_SHARP,
    "__": Accidental.DOUBLE_FLAT,
}

_BAR_LINES: dict[str, BarLineType] = {bar.value: bar for bar in BarLineType}

_TIE_VALUES = ("start", "end", "continue")


def _whole_number(data: dict[str, Any], field: str, default: int = 0) -> int:
    value = data.get(field, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ScoreFormatError(f"'{field}' must be a whole number, got {value!r}.")
    return value


def parse_duration(value: Any) -> int:
    """
    Convert ``value`` to duration units.

    Raises:
        ScoreFormatError: If the value is not a non-negative whole number of
            units or a fraction of a whole note that maps onto one.
    """
    if isinstance(value, bool):
        raise ScoreFormatError(f"Invalid duration: {value!r}.")
    if isinstance(value, int):
        units = value
    elif isinstance(value, str):
        try:
            fraction = Fraction(value.strip()) * WHOLE
        except (ValueError, ZeroDivisionError) as exc:
            raise ScoreFormatError(f"Invalid duration: {value!r}.") from exc
        if fraction.denominator != 1:
            raise ScoreFormatError(f"Duration {value!r} is finer than the unit grid.")
        units = int(fraction)
    else:
        raise ScoreFormatError(f"Invalid duration: {value!r}.")
    if units < 0:
        raise ScoreFormatError(f"Invalid duration: {value!r}. Must be >= 0.")
    return units


class _ScoreBuilder:
    """Turns item dicts into notation objects and links ties along the way."""

    def __init__(self) -> None:
        self._open_ties: dict[tuple[str, int], Note] = {}

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _accidental(self, raw: Any) -> Accidental:
        if raw is None:
            return Accidental.NONE
        try:
            return _ACCIDENTALS[str(raw).strip().lower()]
        except KeyError:
            raise ScoreFormatError(f"Unknown accidental: {raw!r}.") from None

    def _link_tie(self, note: Note, tie_value: Any) -> None:
        if tie_value is None:
            return
        if tie_value not in _TIE_VALUES:
            raise ScoreFormatError(f"Invalid tie value {tie_value!r}. Use one of: {', '.join(_TIE_VALUES)}.")
        position = (note.pitch, note.octave)
        if tie_value in ("end", "continue"):
            start = self._open_ties.pop(position, None)
            if start is None:
                raise ScoreFormatError(f"Tie end on {note!r} has no matching tie start.")
            tie(start, note)
        if tie_value in ("start", "continue"):
            note.is_beginning_tie = True
            self._open_ties[position] = note

    def _note(self, data: dict[str, Any], *, grace: bool = False) -> Note:
        try:
            note = Note(
                pitch=data.get("pitch", "C"),
                octave=_whole_number(data, "octave"),
                accidental=self._accidental(data.get("accidental")),
                duration=parse_duration(data.get("duration", QUARTER)),
                is_rest=data.get("type") == "rest",
                octave_transposition=_whole_number(data, "transpose"),
                grace_notes=tuple(self._note(g, grace=True) for g in data.get("grace", ())),
            )
        except ScoreFormatError:
            raise
        except (TypeError, ValueError, AttributeError) as exc:
            raise ScoreFormatError(f"Invalid note {data!r}: {exc}") from exc
        if not grace:
            self._link_tie(note, data.get("tie"))
        return note

    def _key(self, data: dict[str, Any]) -> KeySignature:
        try:
            if "fifths" in data:
                return KeySignature.from_fifths(_whole_number(data, "fifths"))
            return KeySignature.from_name(str(data.get("name", "C")))
        except ValueError as exc:
            raise ScoreFormatError(f"Invalid key signature {data!r}: {exc}") from exc

    def _tempo(self, data: dict[str, Any]) -> Tempo:
        try:
            return Tempo(
                value=float(data["value"]),
                reference=parse_duration(data.get("reference", QUARTER)),
            )
        except KeyError:
            raise ScoreFormatError(f"Tempo {data!r} has no value.") from None
        except ScoreFormatError:
            raise
        except (TypeError, ValueError) as exc:
            raise ScoreFormatError(f"Invalid tempo {data!r}: {exc}") from exc

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def item(self, data: Any) -> ScoreItem:
        if not isinstance(data, dict):
            raise ScoreFormatError(f"Score items must be objects, got {data!r}.")
        kind = data.get("type")
        if kind in ("note", "rest"):
            return self._note(data)
        if kind == "chord":
            notes = data.get("notes")
            if not notes:
                raise ScoreFormatError("A chord needs at least one note.")
            return Chord(tuple(self._note(note) for note in notes))
        if kind == "bar":
            raw = data.get("bar", "|")
            if not isinstance(raw, str) or raw not in _BAR_LINES:
                raise ScoreFormatError(f"Unknown bar line {raw!r}.")
            return BarLine(_BAR_LINES[raw])
        if kind == "ending":
            numbers = data.get("numbers", [1])
            if isinstance(numbers, int):
                numbers = [numbers]
            try:
                return RepeatBarLine(repeat_numbers=tuple(int(n) for n in numbers))
            except (TypeError, ValueError) as exc:
                raise ScoreFormatError(f"Invalid ending {data!r}: {exc}") from exc
        if kind == "key":
            return self._key(data)
        if kind == "tempo":
            return self._tempo(data)
        raise ScoreFormatError(f"Unknown item type {kind!r}.")


def score_from_dict(data: dict[str, Any]) -> Score:
    """
    Build a Score from a decoded score document.

    Raises:
        ScoreFormatError: If the document is malformed.
    """
    if not isinstance(data, dict) or not isinstance(data.get("items"), list):
        raise ScoreFormatError("A score document needs an 'items' list.")
    builder = _ScoreBuilder()
    return Score(builder.item(item) for item in data["items"])


def load_score(path: str | Path) -> Score:
    """
    Read a JSON score document from ``path``.

    Raises:
        OSError:          If the file cannot be read.
        ScoreFormatError: If the file is not a valid score document.
    """
    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ScoreFormatError(f"{path} is not a UTF-8 JSON document: {exc}") from exc
    return score_from_dict(data)
