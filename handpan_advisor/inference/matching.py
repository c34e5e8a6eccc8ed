"""Scale matching - Score every scale at every transposition.

For each scale and each shift in -6..+6 semitones the unique melody notes
are transposed and classified:
- exact match: the transposed note (with octave) is a tone field
- folded match: its pitch class is on the scale, an octave away
- miss: not playable at all

Score = coverage x 100 - transposition penalty + key bonus + popularity bonus,
clamped at zero.
"""

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Optional, Sequence, Tuple

from ..core import (
    InvalidNoteError,
    PITCH_NAMES,
    Role,
    TRANSPOSITION_RANGE,
    Track,
    note_name_to_midi,
    midi_to_note_name,
)
from ..library import ScaleDefinition
from .key import key_tonic

logger = logging.getLogger(__name__)


@dataclass
class MatchConfig:
    """Configuration for scale scoring.

    Attributes:
        exact_weight: Credit for a note playable at its exact octave (default: 1.0)
        folded_weight: Credit for a note playable an octave away (default: 0.8)
        natural_transpositions: Shifts treated as musically natural (fourths/fifths)
        natural_penalty: Penalty for a natural transposition (default: 5)
        other_penalty: Penalty for any other non-zero transposition (default: 15)
        key_bonus: Bonus when t=0 and the ding matches the detected tonic (default: 10)
        popularity_threshold: Popularity at or above which the bonus applies (default: 0.7)
        popularity_bonus: Bonus for popular scales (default: 3)
    """

    exact_weight: float = 1.0
    folded_weight: float = 0.8
    natural_transpositions: Tuple[int, ...] = (5, 7, -5, -7)
    natural_penalty: float = 5.0
    other_penalty: float = 15.0
    key_bonus: float = 10.0
    popularity_threshold: float = 0.7
    popularity_bonus: float = 3.0


@dataclass(frozen=True)
class MatchCandidate:
    """Score breakdown of one (scale, transposition) pair."""

    scale_id: str
    scale_name: str = ""
    transposition: int = 0
    exact_match_count: float = 0.0
    folded_match_count: float = 0.0  # already weighted
    transpose_penalty: float = 0.0
    key_bonus: float = 0.0
    popularity_bonus: float = 0.0
    coverage: float = 0.0  # 0.0 - 1.0
    score: float = 0.0
    matched_notes: Tuple[str, ...] = ()
    folded_notes: Tuple[str, ...] = ()
    missed_notes: Tuple[str, ...] = ()
    shifted_notes: Tuple[str, ...] = ()
    total_note_count: int = 0
    popularity_score: float = 0.0

    @property
    def is_match(self) -> bool:
        return bool(self.scale_id)


NO_MATCH = MatchCandidate(scale_id="")


@dataclass
class MatchReport:
    """Every candidate of one matching run."""

    candidates: List[MatchCandidate] = field(default_factory=list)
    input_notes: Tuple[str, ...] = ()  # normalized, deduplicated
    dropped_note_count: int = 0  # malformed names


def unique_note_names(names: Iterable[str]) -> Tuple[Tuple[str, ...], int]:
    """
    Normalize and deduplicate note names.

    Returns:
        (names sorted by pitch, number of malformed names dropped)
    """
    pitches = set()
    dropped = 0
    for name in names:
        try:
            pitches.add(note_name_to_midi(name))
        except InvalidNoteError:
            dropped += 1
            logger.debug("Dropping malformed note name %r", name)
    return tuple(midi_to_note_name(p) for p in sorted(pitches)), dropped


def melody_tracks(tracks: Sequence[Track]) -> List[Track]:
    return [t for t in tracks if t.role is Role.MELODY]


def melody_note_names(tracks: Sequence[Track]) -> List[str]:
    """Note names of all melody tracks, pooled."""
    return [n.pitch_name for t in melody_tracks(tracks) for n in t.notes]


class ScaleMatcher:
    """Score a melody against every scale of a library."""

    def __init__(self, config: Optional[MatchConfig] = None):
        self.config = config or MatchConfig()

    def transpose_penalty(self, transposition: int) -> float:
        """0 at t=0, natural penalty for fourths/fifths, other penalty otherwise."""
        if transposition == 0:
            return 0.0
        if transposition in self.config.natural_transpositions:
            return self.config.natural_penalty
        return self.config.other_penalty

    def score_scale(
        self,
        scale: ScaleDefinition,
        notes: Sequence[str],
        transposition: int,
        tonic: Optional[str] = None,
    ) -> MatchCandidate:
        """
        Score one scale at one transposition.

        Args:
            scale: Scale to test
            notes: Unique, normalized note names
            transposition: Shift in semitones
            tonic: Detected key tonic pitch class, or None

        Returns:
            MatchCandidate with the full breakdown
        """
        cfg = self.config
        playable: FrozenSet[str] = scale.playable_notes

        matched, folded, missed, shifted = [], [], [], []
        for name in notes:
            shifted_pitch = note_name_to_midi(name) + transposition
            shifted_name = midi_to_note_name(shifted_pitch)
            shifted.append(shifted_name)
            if shifted_name in playable:
                matched.append(shifted_name)
            elif PITCH_NAMES[shifted_pitch % 12] in scale.pitch_classes:
                folded.append(shifted_name)
            else:
                missed.append(shifted_name)

        exact_count = len(matched) * cfg.exact_weight
        folded_count = len(folded) * cfg.folded_weight
        coverage = (exact_count + folded_count) / len(notes) if notes else 0.0

        penalty = self.transpose_penalty(transposition)
        key_bonus = (
            cfg.key_bonus
            if transposition == 0 and tonic is not None and scale.root_pitch_class == tonic
            else 0.0
        )
        popularity_bonus = (
            cfg.popularity_bonus
            if scale.popularity_score >= cfg.popularity_threshold
            else 0.0
        )
        score = max(0.0, coverage * 100 - penalty + key_bonus + popularity_bonus)

        return MatchCandidate(
            scale_id=scale.id,
            scale_name=scale.name,
            transposition=transposition,
            exact_match_count=exact_count,
            folded_match_count=folded_count,
            transpose_penalty=penalty,
            key_bonus=key_bonus,
            popularity_bonus=popularity_bonus,
            coverage=coverage,
            score=score,
            matched_notes=tuple(matched),
            folded_notes=tuple(folded),
            missed_notes=tuple(missed),
            shifted_notes=tuple(shifted),
            total_note_count=scale.total_note_count,
            popularity_score=scale.popularity_score,
        )

    def match(
        self,
        notes: Iterable[str],
        scales: Iterable[ScaleDefinition],
        detected_key: Optional[str] = None,
    ) -> MatchReport:
        """
        Score every (scale, transposition) pair.

        Args:
            notes: Melody note names; duplicates collapse, malformed names
                are dropped and counted
            scales: Scale library (iterated in order)
            detected_key: Key label such as "D Minor"; "Unknown" or None
                disables the key bonus

        Returns:
            MatchReport with candidates in library order, t ascending
        """
        unique, dropped = unique_note_names(notes)
        tonic = key_tonic(detected_key) if detected_key else None

        candidates = [
            self.score_scale(scale, unique, t, tonic)
            for scale in scales
            for t in TRANSPOSITION_RANGE
        ]
        logger.debug(
            "Scored %d candidates for %d unique notes (%d dropped)",
            len(candidates), len(unique), dropped,
        )
        return MatchReport(candidates=candidates, input_notes=unique, dropped_note_count=dropped)

    def match_tracks(
        self,
        tracks: Sequence[Track],
        scales: Iterable[ScaleDefinition],
        detected_key: Optional[str] = None,
    ) -> MatchReport:
        """Match the pooled notes of every melody track."""
        return self.match(melody_note_names(tracks), scales, detected_key)

