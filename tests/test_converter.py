"""Unit tests for ScoreConverter: timing, ties, repeats, endings and accidentals."""

import pytest

from scoremidi.converter import RepeatState, ScoreConverter
from scoremidi.encodings import StandardMidiEncoding
from scoremidi.errors import InstrumentUnavailableError, InvalidEventError
from scoremidi.events import EventKind, EventSink, EventTrack, MidiEvent
from scoremidi.instruments import GeneralMidiBank, Instrument, InstrumentBank
from scoremidi.notation import (
    EIGHTH,
    HALF,
    QUARTER,
    SIXTEENTH,
    Accidental,
    BarLine,
    BarLineType,
    Chord,
    KeySignature,
    Note,
    RepeatBarLine,
    Score,
    Tempo,
    tie,
)

OPEN = BarLine(BarLineType.REPEAT_OPEN)
CLOSE = BarLine(BarLineType.REPEAT_CLOSE)
CLOSE_OPEN = BarLine(BarLineType.REPEAT_CLOSE_OPEN)
BAR = BarLine()


def _convert(items: list) -> EventTrack:
    return ScoreConverter(StandardMidiEncoding()).convert(Score(items))


def _ons(track: EventTrack) -> list[tuple[int, int]]:
    return [(event.tick, event.message.note) for event in track.of_kind(EventKind.NOTE_ON)]


def _offs(track: EventTrack) -> list[tuple[int, int]]:
    return [(event.tick, event.message.note) for event in track.of_kind(EventKind.NOTE_OFF)]


# ---------------------------------------------------------------------------
# Basic timing
# ---------------------------------------------------------------------------

def test_single_quarter_note_scenario() -> None:
    track = _convert([KeySignature(), Note("C"), BAR])
    assert _ons(track) == [(0, 60)]
    assert _offs(track) == [(QUARTER, 60)]


def test_program_change_is_first_event() -> None:
    track = _convert([Note("C")])
    first = track.events[0]
    assert first.kind is EventKind.PROGRAM_CHANGE
    assert first.tick == 0
    assert first.message.program == 0


def test_selected_instrument_program_is_sent() -> None:
    violin = GeneralMidiBank().find("Violin")
    track = ScoreConverter(instrument=violin).convert(Score([Note("C")]))
    assert track.of_kind(EventKind.PROGRAM_CHANGE)[0].message.program == 40


def test_elapsed_time_is_sum_of_durations_without_repeats() -> None:
    durations = [QUARTER, EIGHTH, EIGHTH, HALF, SIXTEENTH]
    items = [KeySignature()] + [Note("D", duration=d) for d in durations]
    track = _convert(items)
    starts = [tick for tick, _ in _ons(track)]
    assert starts == [0, 96, 144, 192, 384]
    assert track.ticks == sum(durations)


def test_rests_advance_time_without_sounding() -> None:
    track = _convert([Note("C"), Note.rest(HALF), Note("E")])
    assert _ons(track) == [(0, 60), (288, 64)]


def test_empty_score_only_has_program_change() -> None:
    track = _convert([])
    assert len(track) == 1
    assert track.ticks == 0


def test_custom_resolution_scales_ticks() -> None:
    converter = ScoreConverter(resolution=480)
    track = converter.convert(Score([Note("C"), Note("D", duration=EIGHTH)]))
    assert _ons(track) == [(0, 60), (480, 62)]
    assert _offs(track)[-1] == (720, 62)
    assert track.resolution == 480


# ---------------------------------------------------------------------------
# Ties and grace notes
# ---------------------------------------------------------------------------

def test_tie_merges_into_one_note() -> None:
    first = Note("D", duration=QUARTER)
    second = Note("D", duration=EIGHTH)
    tie(first, second)
    track = _convert([first, second, Note("E")])
    assert _ons(track) == [(0, 62), (144, 64)]
    assert _offs(track) == [(144, 62), (240, 64)]


def test_tie_across_bar_line() -> None:
    first = Note("G", duration=HALF)
    second = Note("G", duration=QUARTER)
    tie(first, second)
    track = _convert([KeySignature(), first, BAR, second, Note("A")])
    assert _ons(track) == [(0, 67), (288, 69)]


def test_grace_notes_play_before_their_host() -> None:
    grace = Note("D", duration=SIXTEENTH)
    track = _convert([Note("C", grace_notes=(grace,))])
    assert _ons(track) == [(0, 62), (SIXTEENTH, 60)]
    assert _offs(track) == [(SIXTEENTH, 62), (SIXTEENTH + QUARTER, 60)]


# ---------------------------------------------------------------------------
# Chords
# ---------------------------------------------------------------------------

def test_chord_ons_share_one_tick_and_offs_another() -> None:
    chord = Chord((Note("C"), Note("E"), Note("G")))
    track = _convert([KeySignature(), chord, Note("C", octave=1)])
    note_events = [e for e in track if e.kind in (EventKind.NOTE_ON, EventKind.NOTE_OFF)]
    kinds = [e.kind for e in note_events[:6]]
    assert kinds == [EventKind.NOTE_ON] * 3 + [EventKind.NOTE_OFF] * 3
    assert {e.tick for e in note_events[:3]} == {0}
    assert {e.tick for e in note_events[3:6]} == {QUARTER}
    assert _ons(track)[-1] == (QUARTER, 72)


def test_chord_skips_rests_and_tie_endings() -> None:
    start = Note("E", duration=QUARTER)
    end = Note("E", duration=QUARTER)
    tie(start, end)
    chord = Chord((end, Note.rest(QUARTER), Note("G")))
    track = _convert([Chord((start, Note("C"))), chord])
    # The tied E represents the first chord, which therefore lasts two beats.
    assert _ons(track) == [(0, 64), (0, 60), (192, 67)]
    assert (192, 64) in _offs(track)


def test_chord_uses_shortest_note_as_duration() -> None:
    chord = Chord((Note("C", duration=HALF), Note("E", duration=QUARTER)))
    track = _convert([chord, Note("G")])
    assert _offs(track)[:2] == [(QUARTER, 60), (QUARTER, 64)]
    assert _ons(track)[-1] == (QUARTER, 67)


def test_chord_of_tie_endings_has_no_length() -> None:
    a, b = Note("C"), Note("C")
    tie(a, b)
    track = _convert([a, Chord((b,)), Note("D")])
    assert _ons(track) == [(0, 60), (192, 62)]


# ---------------------------------------------------------------------------
# Repeats and numbered endings
# ---------------------------------------------------------------------------

def test_repeat_plays_section_twice_back_to_back() -> None:
    track = _convert([OPEN, Note("C"), Note("D"), CLOSE, Note("E")])
    assert _ons(track) == [(0, 60), (96, 62), (192, 60), (288, 62), (384, 64)]


def test_repeat_without_open_is_ignored() -> None:
    track = _convert([Note("C"), CLOSE, Note("D")])
    assert _ons(track) == [(0, 60), (96, 62)]


@pytest.mark.parametrize(
    "items",
    [
        # |: C |1 D :|2 E |
        [OPEN, Note("C"), RepeatBarLine((1,)), Note("D"), CLOSE, RepeatBarLine((2,)), Note("E"), BAR],
        # |: C |1 D |2 E |   (the second ending itself sends playback back)
        [OPEN, Note("C"), RepeatBarLine((1,)), Note("D"), RepeatBarLine((2,)), Note("E"), BAR],
    ],
)
def test_numbered_endings(items: list) -> None:
    track = _convert(items)
    assert _ons(track) == [(0, 60), (96, 62), (192, 60), (288, 64)]


def test_wrong_ending_skips_tempo_changes() -> None:
    items = [
        KeySignature(),
        OPEN, Note("F"),
        RepeatBarLine((1,)), Tempo(90), Note("G"), CLOSE,
        RepeatBarLine((2,)), Note("F"), BAR,
    ]
    track = _convert(items)
    assert len(track.of_kind(EventKind.TEMPO)) == 1
    assert _ons(track) == [(0, 65), (96, 67), (192, 65), (288, 65)]


def test_third_ending_is_reached_after_two_rewinds() -> None:
    items = [OPEN, Note("C"), RepeatBarLine((3,)), Note("D"), BAR]
    track = _convert(items)
    assert _ons(track) == [(0, 60), (96, 60), (192, 60), (288, 62)]


def test_close_open_bar_chains_two_repeats() -> None:
    track = _convert([OPEN, Note("C"), CLOSE_OPEN, Note("D"), CLOSE, Note("E")])
    assert _ons(track) == [(0, 60), (96, 60), (192, 62), (288, 62), (384, 64)]


def test_clock_never_moves_backwards() -> None:
    items = [OPEN, Note("C"), Note("D"), CLOSE, OPEN, Note("E"), RepeatBarLine((2,)), Note("F"), BAR]
    starts = [tick for tick, _ in _ons(_convert(items))]
    assert starts == sorted(starts)


# ---------------------------------------------------------------------------
# Keys and accidentals
# ---------------------------------------------------------------------------

def test_accidental_carries_over_until_bar_line() -> None:
    items = [
        KeySignature(),
        Note("F", accidental=Accidental.SHARP),
        Note("F"),
        BAR,
        Note("F"),
    ]
    assert [note for _, note in _ons(_convert(items))] == [66, 66, 65]


def test_natural_in_sharp_key_lasts_for_the_measure() -> None:
    items = [
        KeySignature.from_name("G"),
        Note("F"),
        Note("F", accidental=Accidental.NATURAL),
        Note("F"),
        BAR,
        Note("F"),
    ]
    assert [note for _, note in _ons(_convert(items))] == [66, 65, 65, 66]


def test_accidental_in_other_octave_carries_over() -> None:
    items = [KeySignature(), Note("C", accidental=Accidental.SHARP), Note("C", octave=1)]
    assert [note for _, note in _ons(_convert(items))] == [61, 73]


def test_chord_accidentals_update_key_after_chord() -> None:
    chord = Chord((Note("C"), Note("E", accidental=Accidental.FLAT)))
    items = [KeySignature(), chord, Note("E")]
    assert [note for _, note in _ons(_convert(items))] == [60, 63, 63]


def test_new_key_signature_replaces_declared_key() -> None:
    items = [KeySignature(), Note("B"), KeySignature.from_name("F"), Note("B"), BAR, Note("B")]
    assert [note for _, note in _ons(_convert(items))] == [71, 70, 70]


def test_notes_before_any_key_are_natural() -> None:
    items = [Note("F"), BAR, Note("F", accidental=Accidental.SHARP), Note("F")]
    assert [note for _, note in _ons(_convert(items))] == [65, 66, 65]


def test_tempo_events_use_current_clock() -> None:
    track = _convert([Tempo(120), Note("C", duration=HALF), Tempo(60), Note("D")])
    tempi = track.of_kind(EventKind.TEMPO)
    assert [(e.tick, e.message.tempo) for e in tempi] == [(0, 500000), (192, 1000000)]


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

def test_out_of_range_pitch_aborts_conversion() -> None:
    with pytest.raises(InvalidEventError) as excinfo:
        _convert([Note("C"), Note("C", octave=6)])
    assert isinstance(excinfo.value.__cause__, ValueError)


def test_unknown_program_aborts_before_traversal() -> None:
    converter = ScoreConverter(instrument=Instrument(name="Theremin", program=200))
    with pytest.raises(InstrumentUnavailableError):
        converter.convert(Score([Note("C")]))


def test_empty_bank_aborts_conversion() -> None:
    class EmptyBank(InstrumentBank):
        def available(self) -> list[Instrument]:
            return []

        def load(self, instrument: Instrument) -> Instrument:
            return instrument

    with pytest.raises(InstrumentUnavailableError):
        ScoreConverter(bank=EmptyBank()).convert(Score([Note("C")]))


class RecordingSink(EventSink):
    def __init__(self) -> None:
        self.received: list[MidiEvent] = []

    def append(self, event: MidiEvent) -> None:
        self.received.append(event)


def test_sink_receives_every_converted_event() -> None:
    sink = RecordingSink()
    track = ScoreConverter().convert(Score([Note("C"), Chord((Note("E"), Note("G")))]), sink=sink)
    assert sink.received == track.events
    assert len(sink.received) == 7


def test_sink_receives_nothing_when_conversion_fails() -> None:
    sink = RecordingSink()
    with pytest.raises(InvalidEventError):
        ScoreConverter().convert(Score([Note("C"), Note("C", octave=6)]), sink=sink)
    assert sink.received == []


# ---------------------------------------------------------------------------
# RepeatState
# ---------------------------------------------------------------------------

def test_repeat_state_open_then_close_rewinds_once() -> None:
    state = RepeatState()
    assert state.visit(OPEN, 2) == 2
    assert state.visit(CLOSE, 7) == 2
    assert state.repeat_number == 2
    assert state.visit(CLOSE, 7) == 7
    assert state.repeat_number == 1
    assert not state.has_open


def test_repeat_state_ending_past_target_marks_wrong_ending() -> None:
    state = RepeatState(last_repeat_open=0, repeat_number=2)
    state.visit(RepeatBarLine((1,)), 4)
    assert state.in_wrong_ending
    state.visit(RepeatBarLine((2,)), 6)
    assert not state.in_wrong_ending


def test_repeat_state_simple_bar_changes_nothing() -> None:
    state = RepeatState(last_repeat_open=3, repeat_number=2, in_wrong_ending=True)
    assert state.visit(BAR, 5) == 5
    assert state == RepeatState(last_repeat_open=3, repeat_number=2, in_wrong_ending=True)
