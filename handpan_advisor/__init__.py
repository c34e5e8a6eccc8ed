"""Handpan Advisor - Recommend a handpan scale for a MIDI performance.

Architecture Layers:
    1. core/       - Note events, tracks, roles, note-name arithmetic
    2. input/      - MIDI loading
    3. library/    - Handpan scale catalogue
    4. inference/  - Track roles, key detection, scale matching, ranking
    5. pipeline    - End-to-end analysis producing a ProcessedSong
    6. output/     - Export (JSON, transposed MIDI)
"""

__version__ = "0.3.0"

# Core types
from .core import NoteEvent, Track, Role, MatchMode

# Input layer
from .input import MidiLoader

# Scale library
from .library import ScaleDefinition, ScaleLibrary

# Inference layer
from .inference import (
    TrackClassifier,
    KeyDetector,
    ScaleMatcher,
    RecommendationRanker,
    MatchCandidate,
    NO_MATCH,
)

# Pipeline
from .config import AnalyzerConfig
from .pipeline import SongAnalyzer, ProcessedSong, analyze_midi

# Output layer
from .output import MIDIExporter, song_to_dict, song_to_json

__all__ = [
    # Core
    "NoteEvent",
    "Track",
    "Role",
    "MatchMode",
    # Input
    "MidiLoader",
    # Library
    "ScaleDefinition",
    "ScaleLibrary",
    # Inference
    "TrackClassifier",
    "KeyDetector",
    "ScaleMatcher",
    "RecommendationRanker",
    "MatchCandidate",
    "NO_MATCH",
    # Pipeline
    "AnalyzerConfig",
    "SongAnalyzer",
    "ProcessedSong",
    "analyze_midi",
    # Output
    "MIDIExporter",
    "song_to_dict",
    "song_to_json",
]
