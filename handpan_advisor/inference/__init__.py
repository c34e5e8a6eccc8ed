"""Inference layer - Musical understanding of a parsed song.

Pipeline: Tracks -> [Roles] -> Key -> Scale candidates -> Recommendation
"""

from .tracks import TrackClassifier, ClassifierConfig, TrackStats, average_polyphony
from .key import KeyDetector, KeyInfo, KeyCandidate, key_tonic
from .matching import (
    ScaleMatcher,
    MatchConfig,
    MatchCandidate,
    MatchReport,
    NO_MATCH,
    melody_note_names,
    melody_tracks,
    unique_note_names,
)
from .ranking import RecommendationRanker, RankerConfig

__all__ = [
    # Track classification
    "TrackClassifier",
    "ClassifierConfig",
    "TrackStats",
    "average_polyphony",
    # Key detection
    "KeyDetector",
    "KeyInfo",
    "KeyCandidate",
    "key_tonic",
    # Scale matching
    "ScaleMatcher",
    "MatchConfig",
    "MatchCandidate",
    "MatchReport",
    "NO_MATCH",
    "melody_note_names",
    "melody_tracks",
    "unique_note_names",
    # Ranking
    "RecommendationRanker",
    "RankerConfig",
]
