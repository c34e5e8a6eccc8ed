"""Track data class and role / mode enumerations."""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Tuple

from .note import NoteEvent


class Role(Enum):
    """Musical role of a track within a song."""
    MELODY = "melody"
    RHYTHM = "rhythm"
    HARMONY = "harmony"
    IGNORE = "ignore"


class MatchMode(Enum):
    """Recommendation policy.

    STANDARD favours beginner-friendly 9/10 note scales among near-ties,
    PRO always takes the single best score.
    """
    STANDARD = "standard"
    PRO = "pro"


@dataclass(frozen=True)
class Track:
    """One MIDI track with its note events."""

    id: int
    name: str
    channel: int = 0  # 0-15
    is_percussion: bool = False
    notes: Tuple[NoteEvent, ...] = ()
    role: Role = Role.IGNORE
    program: int = 0  # General MIDI program number
    instrument_family: str = ""

    @property
    def note_count(self) -> int:
        return len(self.notes)

    @property
    def pitch_range(self) -> Tuple[int, int]:
        """Return (lowest, highest) MIDI pitch in the track."""
        if not self.notes:
            return (0, 0)
        pitches = [n.pitch_midi for n in self.notes]
        return (min(pitches), max(pitches))

    @property
    def duration(self) -> float:
        """Time from the first onset to the last release."""
        if not self.notes:
            return 0.0
        return max(n.end_time for n in self.notes) - min(n.start_time for n in self.notes)

    def with_role(self, role: Role) -> "Track":
        """Copy of this track with a different role."""
        return replace(self, role=role)
