"""MIDI loading - raw Standard MIDI File data to tracks of note events."""

import bisect
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import mido

from ..core import DEFAULT_TEMPO, MidiLoadError, NoteEvent, PERCUSSION_CHANNEL, Track

logger = logging.getLogger(__name__)

# General MIDI program families, 8 programs each
GM_FAMILIES = [
    "piano",
    "chromatic percussion",
    "organ",
    "guitar",
    "bass",
    "strings",
    "ensemble",
    "brass",
    "reed",
    "pipe",
    "synth lead",
    "synth pad",
    "synth effects",
    "ethnic",
    "percussive",
    "sound effects",
]

DEFAULT_MIDI_TEMPO = 500000  # microseconds per beat (120 BPM)


def program_family(program: int, is_percussion: bool = False) -> str:
    """General MIDI family name of a program number."""
    if is_percussion:
        return "drums"
    return GM_FAMILIES[max(0, min(program, 127)) // 8]


@dataclass
class LoaderConfig:
    """Configuration for MIDI loading.

    Attributes:
        max_notes_per_track: Reject files with more notes in one track (default: 50000)
        keep_empty_tracks: Keep tracks that carry channel events but no notes (default: True)
    """

    max_notes_per_track: int = 50000
    keep_empty_tracks: bool = True


@dataclass
class ParsedMidi:
    """Tracks and timing extracted from a MIDI file."""

    tracks: List[Track] = field(default_factory=list)
    bpm: float = DEFAULT_TEMPO
    duration: float = 0.0
    ticks_per_beat: int = 480


class _TempoMap:
    """Tick to seconds conversion across tempo changes."""

    def __init__(self, changes: List[Tuple[int, int]], ticks_per_beat: int):
        self.ticks_per_beat = ticks_per_beat
        self.ticks: List[int] = [0]
        self.tempos: List[int] = [DEFAULT_MIDI_TEMPO]
        self.seconds: List[float] = [0.0]

        ordered = sorted(changes, key=lambda change: change[0])
        self.first_tempo = ordered[0][1] if ordered else DEFAULT_MIDI_TEMPO

        for tick, tempo in ordered:
            if tick == self.ticks[-1]:
                self.tempos[-1] = tempo
                continue
            elapsed = mido.tick2second(tick - self.ticks[-1], ticks_per_beat, self.tempos[-1])
            self.ticks.append(tick)
            self.tempos.append(tempo)
            self.seconds.append(self.seconds[-1] + elapsed)

    def to_seconds(self, tick: int) -> float:
        i = bisect.bisect_right(self.ticks, tick) - 1
        return self.seconds[i] + mido.tick2second(
            tick - self.ticks[i], self.ticks_per_beat, self.tempos[i]
        )

    @property
    def initial_bpm(self) -> float:
        """Tempo of the first set_tempo event, 120 BPM when there is none."""
        return float(mido.tempo2bpm(self.first_tempo))


class MidiLoader:
    """Handles MIDI file loading and note extraction."""

    SUPPORTED_FORMATS = {".mid", ".midi", ".smf", ".kar"}

    def __init__(self, config: Optional[LoaderConfig] = None):
        """
        Initialize MidiLoader.

        Args:
            config: Optional LoaderConfig for limits and track filtering
        """
        self.config = config or LoaderConfig()

    def load(self, path: Union[str, Path]) -> ParsedMidi:
        """
        Load a MIDI file from disk.

        Raises:
            MidiLoadError: If the file is missing, has an unsupported
                extension, or cannot be parsed
        """
        path = Path(path)

        if not path.exists():
            raise MidiLoadError(f"MIDI file not found: {path}")

        if path.suffix.lower() not in self.SUPPORTED_FORMATS:
            raise MidiLoadError(
                f"Unsupported format: {path.suffix}. "
                f"Supported: {sorted(self.SUPPORTED_FORMATS)}"
            )

        return self.load_bytes(path.read_bytes())

    def load_bytes(self, data: bytes) -> ParsedMidi:
        """
        Parse raw Standard MIDI File bytes.

        Raises:
            MidiLoadError: If the data is not a valid MIDI file or exceeds
                the configured note ceiling
        """
        if not data:
            raise MidiLoadError("Empty MIDI data")

        try:
            midi = mido.MidiFile(file=io.BytesIO(data))
        except (OSError, EOFError, ValueError, KeyError, IndexError) as e:
            raise MidiLoadError(f"Could not parse MIDI data: {e}") from e

        return self._extract(midi)

    def _extract(self, midi: mido.MidiFile) -> ParsedMidi:
        tempo_changes = []
        for mtrack in midi.tracks:
            tick = 0
            for msg in mtrack:
                tick += msg.time
                if msg.type == "set_tempo":
                    tempo_changes.append((tick, msg.tempo))

        tempo_map = _TempoMap(tempo_changes, midi.ticks_per_beat)

        tracks = []
        for index, mtrack in enumerate(midi.tracks):
            track = self._extract_track(index, mtrack, tempo_map)
            if track is not None:
                tracks.append(track)

        duration = max(
            (n.end_time for t in tracks for n in t.notes), default=0.0
        )
        logger.debug(
            "Parsed %d tracks, %.1f BPM, %.2fs", len(tracks), tempo_map.initial_bpm, duration
        )
        return ParsedMidi(
            tracks=tracks,
            bpm=tempo_map.initial_bpm,
            duration=duration,
            ticks_per_beat=midi.ticks_per_beat,
        )

    def _extract_track(
        self, index: int, mtrack: mido.MidiTrack, tempo_map: _TempoMap
    ) -> Optional[Track]:
        tick = 0
        channel: Optional[int] = None
        programs: Dict[int, int] = {}
        has_channel_events = False
        active: Dict[Tuple[int, int], List[Tuple[int, int]]] = {}
        spans: List[Tuple[int, int, int, int]] = []  # (pitch, start, end, velocity)

        for msg in mtrack:
            tick += msg.time
            if msg.is_meta:
                continue
            if not hasattr(msg, "channel"):
                continue
            has_channel_events = True

            if msg.type == "program_change":
                programs.setdefault(msg.channel, msg.program)
            elif msg.type == "note_on" and msg.velocity > 0:
                if channel is None:
                    channel = msg.channel
                active.setdefault((msg.channel, msg.note), []).append((tick, msg.velocity))
            elif msg.type == "note_off" or (msg.type == "note_on" and msg.velocity == 0):
                pending = active.get((msg.channel, msg.note))
                if pending:
                    start, velocity = pending.pop(0)
                    spans.append((msg.note, start, tick, velocity))

        # close dangling notes at the end of the track
        for (ch, pitch), pending in active.items():
            for start, velocity in pending:
                spans.append((pitch, start, tick, velocity))

        if not spans and not (self.config.keep_empty_tracks and has_channel_events):
            return None

        if len(spans) > self.config.max_notes_per_track:
            raise MidiLoadError(
                f"Track {index} has {len(spans)} notes, "
                f"limit is {self.config.max_notes_per_track}"
            )

        if channel is None:
            channel = min(programs) if programs else 0
        is_percussion = channel == PERCUSSION_CHANNEL
        program = programs.get(channel, 0)

        notes = []
        for pitch, start, end, velocity in spans:
            start_s = tempo_map.to_seconds(start)
            end_s = tempo_map.to_seconds(end)
            notes.append(NoteEvent(
                pitch_midi=pitch,
                start_time=start_s,
                duration=max(0.0, end_s - start_s),
                velocity=velocity / 127.0,
            ))
        notes.sort(key=lambda n: (n.start_time, n.pitch_midi))

        return Track(
            id=index,
            name=mtrack.name.strip() or f"Track {index + 1}",
            channel=channel,
            is_percussion=is_percussion,
            notes=tuple(notes),
            program=program,
            instrument_family=program_family(program, is_percussion),
        )
