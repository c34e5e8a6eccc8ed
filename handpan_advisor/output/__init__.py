"""Output layer - JSON and MIDI export."""

from .json_export import (
    candidate_to_dict,
    note_to_dict,
    song_to_dict,
    song_to_json,
    track_to_dict,
)
from .midi import MIDIExporter

__all__ = [
    "candidate_to_dict",
    "note_to_dict",
    "song_to_dict",
    "song_to_json",
    "track_to_dict",
    "MIDIExporter",
]
