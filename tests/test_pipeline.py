"""End-to-end tests for the song analysis pipeline."""

import pytest

from handpan_advisor import analyze_midi
from handpan_advisor.core import MatchMode, MidiLoadError, NoteEvent, Role, Track
from handpan_advisor.inference import NO_MATCH
from handpan_advisor.library import ScaleLibrary
from handpan_advisor.pipeline import SongAnalyzer

from fixtures.midi_fixtures import (
    D_KURD_MELODY,
    E_MAJOR_MELODY,
    InstrumentSpec,
    band_midi,
    build_midi,
    chords,
    sequence,
    silent_midi,
)


def roles_by_name(song):
    return {t.name: t.role for t in song.tracks}


class TestAnalyzeBytes:
    """Full analysis of in-memory MIDI."""

    @pytest.fixture(scope="class")
    def song(self):
        return SongAnalyzer().analyze_bytes(band_midi(), "band")

    def test_roles(self, song):
        roles = roles_by_name(song)
        assert roles == {
            "Lead Flute": Role.MELODY,
            "Piano": Role.HARMONY,
            "Drums": Role.RHYTHM,
        }

    def test_key(self, song):
        assert song.detected_key == "D Minor"

    def test_recommendation(self, song):
        """The melody is exactly D Kurd 9."""
        assert song.suggested_scale_id == "d_kurd_9"
        assert song.best_match.transposition == 0
        assert song.best_match.score == pytest.approx(113.0)
        assert song.has_recommendation

    def test_metadata(self, song):
        assert song.name == "band"
        assert song.bpm == pytest.approx(120.0)
        assert song.duration == pytest.approx(8.95, abs=1e-2)
        assert song.mode is MatchMode.STANDARD

    def test_candidates_kept(self, song):
        assert len(song.candidates) == 13 * 32
        assert song.input_notes == ("D3", "A3", "A#3", "C4", "D4", "E4", "F4", "G4", "A4")
        assert song.dropped_note_count == 0

    def test_pro_mode(self):
        song = SongAnalyzer().analyze_bytes(band_midi(), "band", MatchMode.PRO)
        assert song.suggested_scale_id == "d_kurd_9"
        assert song.mode is MatchMode.PRO

    def test_deterministic(self):
        analyzer = SongAnalyzer()
        first = analyzer.analyze_bytes(band_midi(), "band")
        second = analyzer.analyze_bytes(band_midi(), "band")
        assert first == second

    def test_one_shot_helper(self, song):
        assert analyze_midi(band_midi(), "band") == song


class TestEdgeCases:
    """Inputs without a usable melody."""

    def test_silent_midi(self):
        song = SongAnalyzer().analyze_bytes(silent_midi(), "silence")

        assert song.detected_key == "Unknown"
        assert song.best_match is NO_MATCH
        assert song.best_match.score == 0.0
        assert song.suggested_scale_id is None
        assert not song.has_recommendation
        assert [t.role for t in song.tracks] == [Role.IGNORE]

    def test_drums_only(self):
        data = build_midi([InstrumentSpec("Kit", is_drum=True, notes=sequence([36, 38] * 8))])
        song = SongAnalyzer().analyze_bytes(data, "drums")
        assert song.detected_key == "Unknown"
        assert not song.has_recommendation

    def test_invalid_bytes(self):
        with pytest.raises(MidiLoadError):
            SongAnalyzer().analyze_bytes(b"garbage", "broken")

    def test_empty_library(self):
        song = SongAnalyzer(library=ScaleLibrary([])).analyze_bytes(band_midi(), "band")
        assert song.detected_key == "D Minor"
        assert song.best_match is NO_MATCH


class TestAnalyzeTracks:
    """Analysis of already-parsed tracks."""

    def test_duration_from_notes(self):
        notes = tuple(
            NoteEvent(pitch_midi=p, start_time=i * 0.5, duration=0.4)
            for i, p in enumerate(E_MAJOR_MELODY)
        )
        song = SongAnalyzer().analyze_tracks([Track(id=0, name="Line", notes=notes)], "line")

        assert song.duration == pytest.approx(3.9)
        assert song.detected_key == "E Major"
        assert song.melody_tracks[0].id == 0

    def test_duplicate_track_ids(self):
        notes = tuple(
            NoteEvent(pitch_midi=p, start_time=i * 0.5, duration=0.4)
            for i, p in enumerate(E_MAJOR_MELODY)
        )
        tracks = [Track(id=0, name="A", notes=notes), Track(id=0, name="B", notes=notes)]
        with pytest.raises(ValueError):
            SongAnalyzer().analyze_tracks(tracks, "twins")


class TestOverrides:
    """Manual role edits and mode switches."""

    @pytest.fixture(scope="class")
    def analyzer(self):
        return SongAnalyzer()

    @pytest.fixture(scope="class")
    def duet(self):
        """A D Kurd lead and a denser, wider E major line."""
        return build_midi([
            InstrumentSpec("Flute", program=73, notes=sequence(D_KURD_MELODY)),
            InstrumentSpec("Synth", program=80, notes=sequence(E_MAJOR_MELODY * 3, step=0.25)),
            InstrumentSpec("Pads", program=88, notes=chords([52, 57])),
        ])

    def test_auto_melody(self, analyzer, duet):
        song = analyzer.analyze_bytes(duet, "duet")
        assert roles_by_name(song)["Synth"] is Role.MELODY
        assert song.detected_key == "E Major"

    def test_override_role_rematches(self, analyzer, duet):
        song = analyzer.analyze_bytes(duet, "duet")
        ids = {t.name: t.id for t in song.tracks}

        edited = analyzer.override_roles(
            song, {ids["Synth"]: Role.IGNORE, ids["Flute"]: Role.MELODY}
        )

        assert roles_by_name(edited)["Flute"] is Role.MELODY
        assert edited.detected_key == "D Minor"
        assert edited.suggested_scale_id == "d_kurd_9"
        # the input song is untouched
        assert song.detected_key == "E Major"
        assert roles_by_name(song)["Flute"] is Role.IGNORE

    def test_override_keeps_other_roles(self, analyzer, duet):
        """Both lines pooled when a second track is promoted."""
        song = analyzer.analyze_bytes(duet, "duet")
        flute = next(t.id for t in song.tracks if t.name == "Flute")

        edited = analyzer.override_role(song, flute, Role.MELODY)

        assert len(edited.melody_tracks) == 2
        assert len(edited.input_notes) > len(song.input_notes)

    def test_demote_only_melody(self, analyzer, duet):
        song = analyzer.analyze_bytes(duet, "duet")
        synth = next(t.id for t in song.tracks if t.name == "Synth")

        edited = analyzer.override_role(song, synth, Role.HARMONY)

        assert edited.detected_key == "Unknown"
        assert edited.best_match is NO_MATCH

    def test_unknown_track_id(self, analyzer, duet):
        song = analyzer.analyze_bytes(duet, "duet")
        with pytest.raises(KeyError):
            analyzer.override_role(song, 99, Role.MELODY)

    def test_override_with_mode(self, analyzer, duet):
        song = analyzer.analyze_bytes(duet, "duet")
        edited = analyzer.override_roles(song, {}, MatchMode.PRO)
        assert edited.mode is MatchMode.PRO

    def test_rerank_matches_fresh_run(self, analyzer, duet):
        """Switching mode re-selects without re-matching."""
        standard = analyzer.analyze_bytes(duet, "duet")
        fresh_pro = analyzer.analyze_bytes(duet, "duet", MatchMode.PRO)

        reranked = analyzer.rerank(standard, MatchMode.PRO)

        assert reranked.best_match == fresh_pro.best_match
        assert reranked.candidates is standard.candidates
        assert standard.mode is MatchMode.STANDARD

    def test_rerank_without_candidates(self, analyzer):
        song = analyzer.analyze_bytes(silent_midi(), "silence")
        reranked = analyzer.rerank(song, MatchMode.PRO)
        assert reranked.mode is MatchMode.PRO
        assert reranked.best_match is NO_MATCH

    def test_top_candidates(self, analyzer, duet):
        song = analyzer.analyze_bytes(duet, "duet")
        top = analyzer.top_candidates(song, 3)
        assert len(top) == 3
        assert top[0] == song.best_match
