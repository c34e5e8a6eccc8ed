"""Core types and constants for Handpan Advisor."""

from .note import (
    NoteEvent,
    midi_to_note_name,
    note_name_to_midi,
    normalize_note_name,
    parse_note_name,
    pitch_class_index,
    pitch_class_of,
    transpose_note_name,
)
from .track import Track, Role, MatchMode
from .errors import (
    HandpanAdvisorError,
    InvalidNoteError,
    MidiLoadError,
    ScaleLibraryError,
)
from .constants import (
    PITCH_NAMES,
    DEFAULT_TEMPO,
    PERCUSSION_CHANNEL,
    TRANSPOSITION_RANGE,
    UNKNOWN_KEY,
)

__all__ = [
    "NoteEvent",
    "Track",
    "Role",
    "MatchMode",
    "midi_to_note_name",
    "note_name_to_midi",
    "normalize_note_name",
    "parse_note_name",
    "pitch_class_index",
    "pitch_class_of",
    "transpose_note_name",
    "HandpanAdvisorError",
    "InvalidNoteError",
    "MidiLoadError",
    "ScaleLibraryError",
    "PITCH_NAMES",
    "DEFAULT_TEMPO",
    "PERCUSSION_CHANNEL",
    "TRANSPOSITION_RANGE",
    "UNKNOWN_KEY",
]
