"""JSON export of analysis results.

Keys use the camelCase names shared with UI clients. Every value is a JSON
native type, so the dicts can be passed straight to ``json.dumps``.
"""

import json
from typing import Any, Dict, Optional

from ..core import NoteEvent, Track
from ..inference import MatchCandidate
from ..pipeline import ProcessedSong


def note_to_dict(note: NoteEvent) -> Dict[str, Any]:
    return {
        "pitchMidi": note.pitch_midi,
        "pitchName": note.pitch_name,
        "startTime": note.start_time,
        "duration": note.duration,
        "velocity": note.velocity,
    }


def track_to_dict(track: Track, include_notes: bool = True) -> Dict[str, Any]:
    data = {
        "id": track.id,
        "name": track.name,
        "channel": track.channel,
        "isPercussion": track.is_percussion,
        "role": track.role.value,
        "program": track.program,
        "instrumentFamily": track.instrument_family,
        "noteCount": track.note_count,
    }
    if include_notes:
        data["notes"] = [note_to_dict(n) for n in track.notes]
    return data


def candidate_to_dict(candidate: MatchCandidate) -> Dict[str, Any]:
    return {
        "scaleId": candidate.scale_id,
        "scaleName": candidate.scale_name,
        "transposition": candidate.transposition,
        "exactMatchCount": candidate.exact_match_count,
        "foldedMatchCount": candidate.folded_match_count,
        "transposePenalty": candidate.transpose_penalty,
        "keyBonus": candidate.key_bonus,
        "popularityBonus": candidate.popularity_bonus,
        "coverage": candidate.coverage,
        "score": candidate.score,
        "matchedNotes": list(candidate.matched_notes),
        "foldedNotes": list(candidate.folded_notes),
        "missedNotes": list(candidate.missed_notes),
        "shiftedNotes": list(candidate.shifted_notes),
        "totalNoteCount": candidate.total_note_count,
        "popularityScore": candidate.popularity_score,
    }


def song_to_dict(
    song: ProcessedSong,
    include_notes: bool = True,
    include_candidates: bool = False,
) -> Dict[str, Any]:
    """
    Serialize a ProcessedSong.

    Args:
        song: Analysis result
        include_notes: Include every note event of every track
        include_candidates: Include the full (scale, transposition) grid

    Returns:
        JSON-ready dictionary
    """
    data = {
        "name": song.name,
        "bpm": song.bpm,
        "duration": song.duration,
        "mode": song.mode.value,
        "tracks": [track_to_dict(t, include_notes) for t in song.tracks],
        "detectedKey": song.detected_key,
        "suggestedScaleId": song.suggested_scale_id,
        "bestMatch": candidate_to_dict(song.best_match),
        "inputNotes": list(song.input_notes),
        "droppedNoteCount": song.dropped_note_count,
    }
    if include_candidates:
        data["candidates"] = [candidate_to_dict(c) for c in song.candidates]
    return data


def song_to_json(
    song: ProcessedSong,
    indent: Optional[int] = 2,
    include_notes: bool = True,
    include_candidates: bool = False,
) -> str:
    return json.dumps(
        song_to_dict(song, include_notes, include_candidates),
        indent=indent,
        ensure_ascii=False,
    )
