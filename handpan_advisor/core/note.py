"""Note events and note-name arithmetic.

Note names follow scientific pitch notation ("C4" is MIDI 60). Sharp
spelling is canonical; flats are accepted on input and normalized.
"""

import re
from dataclasses import dataclass
from typing import Tuple

from .constants import PITCH_NAMES
from .errors import InvalidNoteError

_NOTE_RE = re.compile(r"^([A-G])([#b]?)(-?\d+)$")

_NATURAL_SEMITONES = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}


def midi_to_note_name(pitch: int) -> str:
    """Get note name (e.g., 'C4', 'A#3') for a MIDI pitch."""
    octave = (pitch // 12) - 1
    return f"{PITCH_NAMES[pitch % 12]}{octave}"


def note_name_to_midi(name: str) -> int:
    """Convert a note name such as 'Bb3' to a MIDI pitch.

    Raises:
        InvalidNoteError: if the name is not a valid note with a
            non-negative octave.
    """
    match = _NOTE_RE.match(name.strip()) if isinstance(name, str) else None
    if match is None:
        raise InvalidNoteError(f"Invalid note name: {name!r}")

    letter, accidental, octave_text = match.groups()
    semitone = _NATURAL_SEMITONES[letter]
    if accidental == "#":
        semitone += 1
    elif accidental == "b":
        semitone -= 1

    # Cb4 is B3 and B#3 is C4, so the octave comes from the resolved pitch
    pitch = (int(octave_text) + 1) * 12 + semitone
    if pitch < 12:
        raise InvalidNoteError(f"Note below octave 0: {name!r}")
    return pitch


def parse_note_name(name: str) -> Tuple[str, int]:
    """Split a note name into (canonical pitch class, octave)."""
    pitch = note_name_to_midi(name)
    return PITCH_NAMES[pitch % 12], (pitch // 12) - 1


def normalize_note_name(name: str) -> str:
    """Canonical sharp spelling of a note name ('Bb3' -> 'A#3')."""
    return midi_to_note_name(note_name_to_midi(name))


def pitch_class_of(name: str) -> str:
    """Pitch class of a note name, octave dropped ('Eb4' -> 'D#')."""
    return parse_note_name(name)[0]


def pitch_class_index(pitch_class: str) -> int:
    """Index 0-11 of a bare pitch class, accepting flat spellings."""
    return note_name_to_midi(f"{pitch_class}4") % 12


def transpose_note_name(name: str, semitones: int) -> str:
    """Transpose a note name, rolling the octave over at B/C.

    The result may carry a negative octave when transposing below C0; such
    names never match a scale and are only reported.
    """
    return midi_to_note_name(note_name_to_midi(name) + semitones)


@dataclass(frozen=True)
class NoteEvent:
    """A single timed note of a track."""

    pitch_midi: int  # MIDI pitch (0-127)
    start_time: float  # Start time in seconds
    duration: float  # Duration in seconds
    velocity: float = 0.5  # Normalized velocity (0-1)

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration

    @property
    def pitch_name(self) -> str:
        """Get note name (e.g., 'F#4')."""
        return midi_to_note_name(self.pitch_midi)

    @property
    def pitch_class(self) -> int:
        """Get pitch class (0-11, where 0=C)."""
        return self.pitch_midi % 12

    @property
    def octave(self) -> int:
        return (self.pitch_midi // 12) - 1
