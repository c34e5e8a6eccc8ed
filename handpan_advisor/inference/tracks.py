"""Track classification - Assign a musical role to every track.

Heuristics, first match wins:
- Empty tracks are ignored
- Percussion channel or drum-named tracks carry rhythm
- Chordal material (average polyphony above threshold) is harmony
- Sparse tracks are drones (rhythm) or ignored
- The densest, widest remaining track is the melody
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..core import Role, Track

logger = logging.getLogger(__name__)


@dataclass
class ClassifierConfig:
    """Configuration for track classification.

    Attributes:
        polyphony_threshold: Average simultaneous notes above which a track is harmony (default: 1.5)
        sparse_density: Notes per second of song below which a track is sparse (default: 0.15)
        drone_max_range: Widest pitch range (semitones) of a sparse track still treated as rhythm (default: 7)
        percussion_keywords: Track-name fragments that mark percussion
        lead_keywords: Track-name fragments that boost melody weight
        bass_keywords: Track-name fragments that damp melody weight
        lead_bonus: Melody weight multiplier for lead-named tracks (default: 2.0)
        bass_penalty: Melody weight multiplier for bass tracks (default: 0.1)
        melodic_families: General MIDI families that boost melody weight
        family_bonus: Melody weight multiplier for melodic families (default: 1.2)
    """

    polyphony_threshold: float = 1.5
    sparse_density: float = 0.15
    drone_max_range: int = 7
    percussion_keywords: Tuple[str, ...] = ("drum", "perc")
    lead_keywords: Tuple[str, ...] = ("vocal", "melody", "lead")
    bass_keywords: Tuple[str, ...] = ("bass",)
    lead_bonus: float = 2.0
    bass_penalty: float = 0.1
    melodic_families: Tuple[str, ...] = (
        "piano", "organ", "synth lead", "strings", "brass", "reed", "pipe",
    )
    family_bonus: float = 1.2


@dataclass
class TrackStats:
    """Features the classifier looks at."""

    note_count: int = 0
    density: float = 0.0  # notes per second of song
    pitch_range: int = 0  # semitones, max - min
    average_polyphony: float = 0.0
    melody_weight: float = 0.0


def average_polyphony(track: Track) -> float:
    """
    Mean number of notes sounding while the track is sounding.

    Total note time divided by the length of the union of note spans.
    Zero-length notes count as instantaneous and are ignored.
    """
    spans = [(n.start_time, n.end_time) for n in track.notes if n.duration > 0]
    if not spans:
        return 1.0 if track.notes else 0.0

    spans.sort()
    starts = np.array([s for s, _ in spans])
    ends = np.array([e for _, e in spans])
    total = float(np.sum(ends - starts))

    covered = 0.0
    cur_start, cur_end = spans[0]
    for start, end in spans[1:]:
        if start > cur_end:
            covered += cur_end - cur_start
            cur_start, cur_end = start, end
        else:
            cur_end = max(cur_end, end)
    covered += cur_end - cur_start

    if covered <= 0:
        return 1.0
    return total / covered


def song_duration(tracks: Sequence[Track]) -> float:
    """Time of the last note release across all tracks."""
    return max((n.end_time for t in tracks for n in t.notes), default=0.0)


class TrackClassifier:
    """Classify tracks into melody / rhythm / harmony / ignore.

    Classification is deterministic: identical tracks always get identical
    roles. Input tracks are never modified; new Track values are returned.
    """

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self.config = config or ClassifierConfig()

    def compute_stats(self, track: Track, duration: float) -> TrackStats:
        """Features of one track relative to the song duration."""
        if not track.notes:
            return TrackStats()

        low, high = track.pitch_range
        density = track.note_count / duration if duration > 0 else float(track.note_count)
        stats = TrackStats(
            note_count=track.note_count,
            density=density,
            pitch_range=high - low,
            average_polyphony=average_polyphony(track),
        )
        stats.melody_weight = density * (stats.pitch_range + 1) * self._name_multiplier(track)
        return stats

    def _name_multiplier(self, track: Track) -> float:
        cfg = self.config
        name = track.name.lower()
        multiplier = 1.0
        if track.instrument_family == "bass" or any(k in name for k in cfg.bass_keywords):
            multiplier *= cfg.bass_penalty
        if any(k in name for k in cfg.lead_keywords):
            multiplier *= cfg.lead_bonus
        if track.instrument_family in cfg.melodic_families:
            multiplier *= cfg.family_bonus
        return multiplier

    def _is_percussion(self, track: Track) -> bool:
        name = track.name.lower()
        return track.is_percussion or any(k in name for k in self.config.percussion_keywords)

    def classify_track(self, track: Track, stats: TrackStats) -> Optional[Role]:
        """
        Role of a single track, or None when it is a melody candidate.

        Args:
            track: Track to classify
            stats: Its features from compute_stats

        Returns:
            A definite Role, or None if the track competes for melody
        """
        cfg = self.config

        if not track.notes:
            return Role.IGNORE

        if self._is_percussion(track):
            return Role.RHYTHM

        if stats.average_polyphony > cfg.polyphony_threshold:
            return Role.HARMONY

        if stats.density < cfg.sparse_density:
            if stats.pitch_range <= cfg.drone_max_range:
                return Role.RHYTHM
            return Role.IGNORE

        return None

    def classify(self, tracks: Sequence[Track]) -> List[Track]:
        """
        Classify all tracks of a song.

        Exactly one melody is chosen when any track qualifies: the highest
        melody weight (note density x pitch range breadth), ties broken by
        lowest track id. Sparse wide-range tracks are only promoted when no
        regular candidate exists.

        Args:
            tracks: Tracks of one song

        Returns:
            New tracks, same order, with roles assigned

        Raises:
            ValueError: If two tracks share an id
        """
        ids = [t.id for t in tracks]
        if len(set(ids)) != len(ids):
            duplicates = sorted({i for i in ids if ids.count(i) > 1})
            raise ValueError(f"Duplicate track ids: {duplicates}")

        stats = self.track_stats(tracks)

        roles: Dict[int, Role] = {}
        candidates = []
        fallback = []
        for track in tracks:
            role = self.classify_track(track, stats[track.id])
            if role is None:
                candidates.append(track)
                role = Role.IGNORE
            elif role is Role.IGNORE and track.notes:
                fallback.append(track)
            roles[track.id] = role

        pool = candidates or fallback
        primary = self.pick_primary(pool, stats)
        if primary is not None:
            roles[primary.id] = Role.MELODY
            logger.debug(
                "Melody track %d (%s), weight %.3f",
                primary.id, primary.name, stats[primary.id].melody_weight,
            )
        else:
            logger.info("No melody track found among %d tracks", len(tracks))

        return [t.with_role(roles[t.id]) for t in tracks]

    def pick_primary(
        self, tracks: Sequence[Track], stats: Dict[int, TrackStats]
    ) -> Optional[Track]:
        """Highest melody weight wins, lowest id on ties."""
        if not tracks:
            return None
        return min(tracks, key=lambda t: (-stats[t.id].melody_weight, t.id))

    def track_stats(self, tracks: Sequence[Track]) -> Dict[int, TrackStats]:
        """Stats for every track, keyed by track id."""
        duration = song_duration(tracks)
        return {t.id: self.compute_stats(t, duration) for t in tracks}
