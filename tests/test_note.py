"""Tests for note names, transposition and the NoteEvent type."""

import pytest

from handpan_advisor.core import (
    InvalidNoteError,
    NoteEvent,
    midi_to_note_name,
    normalize_note_name,
    note_name_to_midi,
    parse_note_name,
    pitch_class_of,
    transpose_note_name,
)


class TestNoteNames:
    """Parsing and spelling of note names."""

    def test_middle_c(self):
        assert note_name_to_midi("C4") == 60
        assert midi_to_note_name(60) == "C4"

    def test_flats_normalize_to_sharps(self):
        assert normalize_note_name("Bb3") == "A#3"
        assert normalize_note_name("Eb4") == "D#4"
        assert pitch_class_of("Db5") == "C#"

    def test_enharmonic_octave_rollover(self):
        assert normalize_note_name("Cb4") == "B3"
        assert normalize_note_name("B#3") == "C4"

    def test_parse_returns_pitch_class_and_octave(self):
        assert parse_note_name("F#4") == ("F#", 4)
        assert parse_note_name("A0") == ("A", 0)

    @pytest.mark.parametrize("name", ["H2", "C", "c4", "C#-1", "", "F##4", "X9"])
    def test_malformed_names_raise(self, name):
        with pytest.raises(InvalidNoteError):
            note_name_to_midi(name)

    def test_invalid_note_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_note_name("nope")

    def test_negative_octave_from_flat_is_rejected(self):
        # Cb0 would be B-1
        with pytest.raises(InvalidNoteError):
            note_name_to_midi("Cb0")


class TestTransposition:
    """Octave-aware transposition."""

    def test_rollover_upwards(self):
        assert transpose_note_name("B3", 2) == "C#4"

    def test_rollover_downwards(self):
        assert transpose_note_name("C4", -1) == "B3"
        assert transpose_note_name("D4", -6) == "G#3"

    def test_within_octave(self):
        assert transpose_note_name("E4", 5) == "A4"

    def test_full_octave(self):
        assert transpose_note_name("G3", 12) == "G4"
        assert transpose_note_name("G3", -12) == "G2"

    def test_accepts_flat_input(self):
        assert transpose_note_name("Bb3", 2) == "C4"


class TestNoteEvent:
    """Derived properties of NoteEvent."""

    def test_pitch_name_and_class(self):
        note = NoteEvent(pitch_midi=66, start_time=1.0, duration=0.5, velocity=0.8)
        assert note.pitch_name == "F#4"
        assert note.pitch_class == 6
        assert note.octave == 4
        assert note.end_time == pytest.approx(1.5)

    def test_immutable(self):
        note = NoteEvent(pitch_midi=60, start_time=0.0, duration=1.0)
        with pytest.raises(AttributeError):
            note.pitch_midi = 61
