"""Song analysis pipeline.

classify tracks -> detect key -> match scales -> rank

Every stage is a pure function of its inputs. A ProcessedSong is an
immutable snapshot; overriding a role or switching mode returns a new one.
"""

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple, Union

from .config import AnalyzerConfig
from .core import DEFAULT_TEMPO, MatchMode, Role, Track, UNKNOWN_KEY
from .inference import (
    KeyDetector,
    MatchCandidate,
    NO_MATCH,
    RecommendationRanker,
    ScaleMatcher,
    TrackClassifier,
    melody_tracks,
)
from .input import MidiLoader, ParsedMidi
from .library import ScaleLibrary, default_library

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessedSong:
    """Result of analyzing one MIDI file."""

    name: str
    bpm: float = DEFAULT_TEMPO
    duration: float = 0.0
    tracks: Tuple[Track, ...] = ()
    detected_key: str = UNKNOWN_KEY
    suggested_scale_id: Optional[str] = None
    best_match: MatchCandidate = NO_MATCH
    mode: MatchMode = MatchMode.STANDARD
    candidates: Tuple[MatchCandidate, ...] = ()  # every (scale, t) pair, library order
    input_notes: Tuple[str, ...] = ()  # unique melody notes that were matched
    dropped_note_count: int = 0

    @property
    def melody_tracks(self) -> Tuple[Track, ...]:
        return tuple(melody_tracks(self.tracks))

    @property
    def has_recommendation(self) -> bool:
        return self.best_match.is_match


class SongAnalyzer:
    """Run the full analysis pipeline against a scale library."""

    def __init__(
        self,
        library: Optional[ScaleLibrary] = None,
        config: Optional[AnalyzerConfig] = None,
    ):
        """
        Initialize SongAnalyzer.

        Args:
            library: Scale catalogue (default: the bundled one)
            config: Thresholds for every stage (default: AnalyzerConfig())
        """
        self.library = library if library is not None else default_library()
        self.config = config or AnalyzerConfig()
        self.loader = MidiLoader(self.config.loader)
        self.classifier = TrackClassifier(self.config.classifier)
        self.key_detector = KeyDetector()
        self.matcher = ScaleMatcher(self.config.matching)
        self.ranker = RecommendationRanker(self.config.ranking)

    def analyze_bytes(
        self, data: bytes, name: str, mode: MatchMode = MatchMode.STANDARD
    ) -> ProcessedSong:
        """
        Analyze raw MIDI bytes.

        Raises:
            MidiLoadError: If the data cannot be parsed
        """
        return self.analyze_parsed(self.loader.load_bytes(data), name, mode)

    def analyze_file(
        self, path: Union[str, Path], mode: MatchMode = MatchMode.STANDARD
    ) -> ProcessedSong:
        """Analyze a MIDI file; the display name is the file stem."""
        path = Path(path)
        return self.analyze_parsed(self.loader.load(path), path.stem, mode)

    def analyze_parsed(
        self, parsed: ParsedMidi, name: str, mode: MatchMode = MatchMode.STANDARD
    ) -> ProcessedSong:
        return self.analyze_tracks(
            parsed.tracks, name, bpm=parsed.bpm, duration=parsed.duration, mode=mode
        )

    def analyze_tracks(
        self,
        tracks: Sequence[Track],
        name: str,
        bpm: float = DEFAULT_TEMPO,
        duration: Optional[float] = None,
        mode: MatchMode = MatchMode.STANDARD,
    ) -> ProcessedSong:
        """
        Classify tracks, then detect key, match and rank.

        Args:
            tracks: Parsed tracks (roles are reassigned)
            name: Display name
            bpm: Representative tempo
            duration: Song length in seconds (default: last note release)
            mode: Ranking policy

        Returns:
            A new ProcessedSong
        """
        classified = self.classifier.classify(tracks)
        if duration is None:
            duration = max((n.end_time for t in tracks for n in t.notes), default=0.0)
        return self._match_and_rank(name, bpm, duration, classified, MatchMode(mode))

    def _match_and_rank(
        self,
        name: str,
        bpm: float,
        duration: float,
        tracks: Sequence[Track],
        mode: MatchMode,
    ) -> ProcessedSong:
        song = ProcessedSong(
            name=name, bpm=bpm, duration=duration, tracks=tuple(tracks), mode=mode
        )

        melody = melody_tracks(tracks)
        if not melody:
            logger.info("%s: no melody track, skipping scale matching", name)
            return song

        notes = [n for t in melody for n in t.notes]
        detected_key = self.key_detector.detect(notes)
        report = self.matcher.match(
            (n.pitch_name for n in notes), self.library, detected_key
        )
        best = self.ranker.select(report.candidates, mode)

        if report.dropped_note_count:
            logger.warning(
                "%s: dropped %d notes outside the nameable range",
                name, report.dropped_note_count,
            )
        logger.info(
            "%s: key %s, suggested %s (t=%+d, score %.1f)",
            name, detected_key, best.scale_id or "-", best.transposition, best.score,
        )

        return replace(
            song,
            detected_key=detected_key,
            suggested_scale_id=best.scale_id or None,
            best_match=best,
            candidates=tuple(report.candidates),
            input_notes=report.input_notes,
            dropped_note_count=report.dropped_note_count,
        )

    def override_roles(
        self,
        song: ProcessedSong,
        roles: Dict[int, Role],
        mode: Optional[MatchMode] = None,
    ) -> ProcessedSong:
        """
        Re-run key detection, matching and ranking after manual role edits.

        Other tracks keep their roles; the classifier is not re-run.

        Args:
            song: Previous result (left untouched)
            roles: New role per track id
            mode: Ranking policy (default: the song's mode)

        Raises:
            KeyError: If a track id is not part of the song
        """
        known = {t.id for t in song.tracks}
        for track_id in roles:
            if track_id not in known:
                raise KeyError(f"No track with id {track_id} in {song.name!r}")

        tracks = [
            t.with_role(Role(roles[t.id])) if t.id in roles else t
            for t in song.tracks
        ]
        return self._match_and_rank(
            song.name, song.bpm, song.duration, tracks, MatchMode(mode or song.mode)
        )

    def override_role(
        self,
        song: ProcessedSong,
        track_id: int,
        role: Role,
        mode: Optional[MatchMode] = None,
    ) -> ProcessedSong:
        """Single-track form of override_roles."""
        return self.override_roles(song, {track_id: role}, mode)

    def rerank(self, song: ProcessedSong, mode: MatchMode) -> ProcessedSong:
        """
        Select again from the song's candidates under another mode.

        No matching is repeated.
        """
        mode = MatchMode(mode)
        if not song.candidates:
            return replace(song, mode=mode)

        best = self.ranker.select(song.candidates, mode)
        return replace(
            song,
            mode=mode,
            best_match=best,
            suggested_scale_id=best.scale_id or None,
        )

    def top_candidates(self, song: ProcessedSong, limit: int = 5) -> Sequence[MatchCandidate]:
        """Best candidates of a song in its mode's order."""
        return self.ranker.rank(song.candidates, song.mode)[:limit]


def analyze_midi(
    data: bytes,
    name: str,
    library: Optional[ScaleLibrary] = None,
    mode: MatchMode = MatchMode.STANDARD,
    config: Optional[AnalyzerConfig] = None,
) -> ProcessedSong:
    """Analyze raw MIDI bytes in one call."""
    return SongAnalyzer(library, config).analyze_bytes(data, name, mode)
