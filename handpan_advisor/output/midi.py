"""MIDI export of the melody transposed for the recommended scale."""

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

import pretty_midi

from ..core import Track
from ..core.constants import DEFAULT_TEMPO, MIDI_MAX, MIDI_MIN
from ..pipeline import ProcessedSong

logger = logging.getLogger(__name__)


class MIDIExporter:
    """Export melody tracks to MIDI format."""

    def __init__(
        self,
        instrument_name: str = "Handpan",
        instrument_program: int = 114,  # Steel Drums
    ):
        """
        Initialize MIDIExporter.

        Args:
            instrument_name: MIDI instrument name
            instrument_program: MIDI program number (0-127)
        """
        self.instrument_name = instrument_name
        self.instrument_program = instrument_program

    def tracks_to_pretty_midi(
        self,
        tracks: Sequence[Track],
        transposition: int = 0,
        tempo: float = DEFAULT_TEMPO,
    ) -> pretty_midi.PrettyMIDI:
        """Convert tracks to a PrettyMIDI object without saving.

        Notes shifted outside 0-127 are dropped.
        """
        midi = pretty_midi.PrettyMIDI(initial_tempo=tempo)

        instrument = pretty_midi.Instrument(
            program=self.instrument_program,
            name=self.instrument_name,
        )

        skipped = 0
        for track in tracks:
            for note in track.notes:
                pitch = note.pitch_midi + transposition
                if not MIDI_MIN <= pitch <= MIDI_MAX:
                    skipped += 1
                    continue
                instrument.notes.append(pretty_midi.Note(
                    velocity=max(1, min(127, int(round(note.velocity * 127)))),
                    pitch=pitch,
                    start=note.start_time,
                    end=note.end_time,
                ))

        if skipped:
            logger.warning("Skipped %d notes shifted out of MIDI range", skipped)

        instrument.notes.sort(key=lambda n: (n.start, n.pitch))
        midi.instruments.append(instrument)
        return midi

    def song_to_pretty_midi(
        self, song: ProcessedSong, transposition: Optional[int] = None
    ) -> pretty_midi.PrettyMIDI:
        """Melody tracks of a song, shifted by the best match's transposition."""
        if transposition is None:
            transposition = song.best_match.transposition
        return self.tracks_to_pretty_midi(song.melody_tracks, transposition, song.bpm)

    def export_transposed(
        self,
        song: ProcessedSong,
        output_path: Union[str, Path],
        transposition: Optional[int] = None,
    ) -> None:
        """
        Write the song's melody, transposed for the recommended scale.

        Args:
            song: Analysis result
            output_path: Path to output MIDI file
            transposition: Override the best match's shift
        """
        midi = self.song_to_pretty_midi(song, transposition)

        # Ensure output directory exists
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)

        midi.write(str(output_path))
