"""Input layer - MIDI loading."""

from .loader import MidiLoader, LoaderConfig, ParsedMidi, program_family

__all__ = [
    "MidiLoader",
    "LoaderConfig",
    "ParsedMidi",
    "program_family",
]
