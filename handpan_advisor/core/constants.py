"""Global constants for Handpan Advisor."""

# Pitch names (sharp spelling is canonical)
PITCH_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# Musical defaults
DEFAULT_TEMPO = 120.0

# MIDI ranges
MIDI_MIN = 0
MIDI_MAX = 127
PERCUSSION_CHANNEL = 9  # channel 10, zero-based

# Transposition search window (semitones)
TRANSPOSITION_RANGE = range(-6, 7)

# Key label used when nothing can be detected
UNKNOWN_KEY = "Unknown"
