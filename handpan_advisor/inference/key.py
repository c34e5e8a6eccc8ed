"""Key detection - Identify the tonal center of a melody.

Implements Krumhansl-Schmuckler key finding:
- Duration-weighted pitch class histogram
- Cross-correlation (dot product) against rotated major/minor profiles
- Deterministic tie-break (tonic ascending, major before minor)
- Confidence, alternatives and relative/parallel keys for display
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

import numpy as np

from ..core import (
    InvalidNoteError,
    NoteEvent,
    PITCH_NAMES,
    UNKNOWN_KEY,
    note_name_to_midi,
    pitch_class_index,
)

logger = logging.getLogger(__name__)

MAJOR = "Major"
MINOR = "Minor"


@dataclass
class KeyCandidate:
    """A candidate key with its score."""
    root: str
    mode: str
    correlation: float

    @property
    def name(self) -> str:
        return f"{self.root} {self.mode}"


@dataclass
class KeyInfo:
    """Container for key detection results."""

    root: Optional[str]  # Tonic pitch class (e.g., "E"), None when unknown
    mode: Optional[str]  # "Major" or "Minor"
    correlation: float = 0.0  # Profile dot product of the winner
    confidence: float = 0.0  # 0.0 - 1.0
    pitch_class_distribution: np.ndarray = field(default_factory=lambda: np.zeros(12))
    alternatives: List[KeyCandidate] = field(default_factory=list)
    ambiguity_score: float = 0.0  # 0=clear, 1=very ambiguous
    relative_key: Optional[str] = None
    parallel_key: Optional[str] = None

    @property
    def label(self) -> str:
        """Key label such as 'E Major', or 'Unknown'."""
        if self.root is None:
            return UNKNOWN_KEY
        return f"{self.root} {self.mode}"

    @property
    def is_known(self) -> bool:
        return self.root is not None


def key_tonic(label: str) -> Optional[str]:
    """Tonic pitch class of a key label ('Eb Minor' -> 'D#'), None if unknown."""
    if not label or label == UNKNOWN_KEY:
        return None
    try:
        return PITCH_NAMES[pitch_class_index(label.split()[0])]
    except InvalidNoteError:
        return None


class KeyDetector:
    """Detect musical key from note events.

    Correlation is the plain dot product of the normalized histogram with
    the reference profile; the first maximum in iteration order wins.
    """

    # Krumhansl-Schmuckler key profiles (cognitive-based)
    KRUMHANSL_MAJOR = np.array(
        [6.35, 2.23, 3.48, 2.33, 4.38, 4.09, 2.52, 5.19, 2.39, 3.66, 2.29, 2.88]
    )
    KRUMHANSL_MINOR = np.array(
        [6.33, 2.68, 3.52, 5.38, 2.60, 3.53, 2.54, 4.75, 3.98, 2.69, 3.34, 3.17]
    )

    def __init__(self, ambiguity_threshold: float = 0.02, max_alternatives: int = 3):
        """
        Initialize KeyDetector.

        Args:
            ambiguity_threshold: Relative score gap below which a rival key
                counts as ambiguous
            max_alternatives: Alternatives reported by analyze()
        """
        self.ambiguity_threshold = ambiguity_threshold
        self.max_alternatives = max_alternatives

    def build_histogram(self, notes: Iterable[NoteEvent]) -> np.ndarray:
        """
        Duration-weighted pitch class histogram (not normalized).

        Notes with a non-positive duration weigh 1.
        """
        histogram = np.zeros(12)
        for note in notes:
            weight = note.duration if note.duration > 0 else 1.0
            histogram[note.pitch_class] += weight
        return histogram

    def _get_all_candidates(self, distribution: np.ndarray) -> List[KeyCandidate]:
        """All 24 keys in tonic-ascending, major-before-minor order."""
        candidates = []
        for shift in range(12):
            root = PITCH_NAMES[shift]
            rotated = np.roll(distribution, -shift)
            candidates.append(
                KeyCandidate(root, MAJOR, float(np.dot(rotated, self.KRUMHANSL_MAJOR)))
            )
            candidates.append(
                KeyCandidate(root, MINOR, float(np.dot(rotated, self.KRUMHANSL_MINOR)))
            )
        return candidates

    def _best(self, candidates: Sequence[KeyCandidate]) -> KeyCandidate:
        best = candidates[0]
        for candidate in candidates[1:]:
            if candidate.correlation > best.correlation:
                best = candidate
        return best

    def _normalized(self, notes: Iterable[NoteEvent]) -> Optional[np.ndarray]:
        histogram = self.build_histogram(notes)
        total = histogram.sum()
        if total <= 0:
            return None
        return histogram / total

    def detect(self, notes: Iterable[NoteEvent]) -> str:
        """
        Detect the key of a set of notes.

        Args:
            notes: Note events (typically the pooled melody tracks)

        Returns:
            Key label such as "E Major", or "Unknown" for empty input
        """
        distribution = self._normalized(notes)
        if distribution is None:
            return UNKNOWN_KEY
        return self._best(self._get_all_candidates(distribution)).name

    def detect_from_names(self, names: Iterable[str]) -> str:
        """Detect the key of bare note names, each weighing 1.

        Malformed names are skipped.
        """
        notes = []
        for name in names:
            try:
                pitch = note_name_to_midi(name)
            except InvalidNoteError:
                logger.debug("Skipping malformed note name %r", name)
                continue
            notes.append(NoteEvent(pitch_midi=pitch, start_time=0.0, duration=1.0))
        return self.detect(notes)

    def analyze(self, notes: Iterable[NoteEvent]) -> KeyInfo:
        """
        Perform full key analysis with alternatives and ambiguity.

        Args:
            notes: Note events

        Returns:
            KeyInfo; root is None when nothing can be detected
        """
        distribution = self._normalized(notes)
        if distribution is None:
            return KeyInfo(root=None, mode=None, ambiguity_score=1.0)

        candidates = self._get_all_candidates(distribution)
        best = self._best(candidates)

        ranked = sorted(
            (c for c in candidates if c is not best),
            key=lambda c: c.correlation,
            reverse=True,
        )

        profile = self.KRUMHANSL_MAJOR if best.mode == MAJOR else self.KRUMHANSL_MINOR
        rotated = np.roll(distribution, -PITCH_NAMES.index(best.root))
        confidence = max(0.0, min(1.0, (self._correlate(rotated, profile) + 1) / 2))

        return KeyInfo(
            root=best.root,
            mode=best.mode,
            correlation=best.correlation,
            confidence=confidence,
            pitch_class_distribution=distribution,
            alternatives=ranked[: self.max_alternatives],
            ambiguity_score=self._calculate_ambiguity(best, ranked),
            relative_key=self._get_relative_key(best.root, best.mode),
            parallel_key=self._get_parallel_key(best.root, best.mode),
        )

    def _correlate(self, distribution: np.ndarray, profile: np.ndarray) -> float:
        """
        Pearson correlation between distribution and profile.

        Handles edge cases gracefully for degenerate input.
        """
        if distribution.std() == 0 or profile.std() == 0:
            return 0.0

        corr = np.corrcoef(distribution, profile)[0, 1]

        if np.isnan(corr):
            return 0.0

        return float(corr)

    def _calculate_ambiguity(
        self, best: KeyCandidate, others: Sequence[KeyCandidate]
    ) -> float:
        """
        How ambiguous the detection is.

        Returns:
            Ambiguity score 0.0 (clear) to 1.0 (very ambiguous)
        """
        if not others or best.correlation <= 0:
            return 0.0

        close = [
            c for c in others
            if (best.correlation - c.correlation) / best.correlation < self.ambiguity_threshold
        ]
        return min(1.0, len(close) / 3.0)

    def _get_relative_key(self, root: str, mode: str) -> str:
        """
        Get the relative major/minor key.

        Relative minor is 3 semitones down from major.
        """
        root_idx = PITCH_NAMES.index(root)
        if mode == MAJOR:
            return f"{PITCH_NAMES[(root_idx - 3) % 12]} {MINOR}"
        return f"{PITCH_NAMES[(root_idx + 3) % 12]} {MAJOR}"

    def _get_parallel_key(self, root: str, mode: str) -> str:
        """Same root, other mode."""
        return f"{root} {MINOR if mode == MAJOR else MAJOR}"
