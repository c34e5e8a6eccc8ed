"""Tests for scale matching and scoring."""

import pytest

from handpan_advisor.core import NoteEvent, Role, Track
from handpan_advisor.inference import MatchConfig, ScaleMatcher, unique_note_names
from handpan_advisor.library import ScaleDefinition, default_library

D_KURD_NOTES = ["D3", "A3", "A#3", "C4", "D4", "E4", "F4", "G4", "A4"]


def chromatic_scale(popularity=0.0):
    """Every note from C1 to B7, so coverage is 1.0 at any shift."""
    notes = tuple(f"{pc}{octave}" for octave in range(1, 8)
                  for pc in ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"))
    return ScaleDefinition(
        id="chromatic", name="Chromatic", root="C1", top_notes=notes[1:],
        popularity_score=popularity,
    )


def candidate_at(report, scale_id, transposition):
    for c in report.candidates:
        if c.scale_id == scale_id and c.transposition == transposition:
            return c
    raise AssertionError(f"No candidate {scale_id} at {transposition}")


class TestUniqueNoteNames:
    """Input normalization."""

    def test_dedupes_and_sorts_by_pitch(self):
        names, dropped = unique_note_names(["A4", "D3", "A4", "Bb3", "A#3"])
        assert names == ("D3", "A#3", "A4")
        assert dropped == 0

    def test_counts_malformed(self):
        names, dropped = unique_note_names(["D4", "??", "H3"])
        assert names == ("D4",)
        assert dropped == 2


class TestScoring:
    """Score breakdown of single candidates."""

    @pytest.fixture
    def d_kurd(self):
        return default_library().get("d_kurd_9")

    def test_exact_match_at_zero(self, d_kurd):
        """The scale's own notes match exactly with key and popularity bonus."""
        c = ScaleMatcher().score_scale(d_kurd, D_KURD_NOTES, 0, tonic="D")

        assert c.exact_match_count == 9
        assert c.folded_match_count == 0
        assert c.coverage == pytest.approx(1.0)
        assert c.key_bonus == 10
        assert c.popularity_bonus == 3
        assert c.score == pytest.approx(113.0)
        assert c.missed_notes == ()

    def test_octave_folding(self, d_kurd):
        """A5 is not a tone field but its pitch class is."""
        c = ScaleMatcher().score_scale(d_kurd, ["D3", "A5"], 0)

        assert c.matched_notes == ("D3",)
        assert c.folded_notes == ("A5",)
        assert c.folded_match_count == pytest.approx(0.8)
        assert c.coverage == pytest.approx(0.9)
        assert c.score == pytest.approx(93.0)

    def test_folding_is_octave_invariant(self, d_kurd):
        """Coverage never drops when a note moves to another octave."""
        matcher = ScaleMatcher()
        base = matcher.score_scale(d_kurd, ["F4"], 0)
        for octave in (1, 2, 5, 6):
            moved = matcher.score_scale(d_kurd, [f"F{octave}"], 0)
            assert moved.coverage > 0
            assert moved.coverage <= base.coverage

    def test_missed_notes(self, d_kurd):
        c = ScaleMatcher().score_scale(d_kurd, ["D3", "C#4"], 0)
        assert c.missed_notes == ("C#4",)
        assert c.coverage == pytest.approx(0.5)

    def test_transposition_shifts_notes(self, d_kurd):
        """C major notes a whole step down fit D Kurd after t=+2."""
        c = ScaleMatcher().score_scale(d_kurd, ["C3", "G3", "G#3", "A#3"], 2)
        assert c.shifted_notes == ("D3", "A3", "A#3", "C4")
        assert c.exact_match_count == 4
        assert c.transpose_penalty == 15

    def test_key_bonus_needs_zero_transposition(self, d_kurd):
        c = ScaleMatcher().score_scale(d_kurd, ["D3"], 5, tonic="D")
        assert c.key_bonus == 0

    def test_key_bonus_needs_matching_tonic(self, d_kurd):
        c = ScaleMatcher().score_scale(d_kurd, ["D3"], 0, tonic="E")
        assert c.key_bonus == 0

    def test_key_bonus_with_flat_ding(self):
        scale = ScaleDefinition(id="eb", name="Eb Test", root="Eb3", top_notes=("Bb3", "Eb4"))
        report = ScaleMatcher().match(["Eb3", "Bb3"], [scale], "Eb Major")
        assert candidate_at(report, "eb", 0).key_bonus == 10

    def test_popularity_threshold(self):
        matcher = ScaleMatcher()
        popular = ScaleDefinition(id="p", name="P", root="D3", popularity_score=0.7)
        niche = ScaleDefinition(id="n", name="N", root="D3", popularity_score=0.69)
        assert matcher.score_scale(popular, ["D3"], 0).popularity_bonus == 3
        assert matcher.score_scale(niche, ["D3"], 0).popularity_bonus == 0

    def test_score_is_clamped_at_zero(self):
        c = ScaleMatcher().score_scale(
            ScaleDefinition(id="x", name="X", root="C4"), ["F#4", "G#4"], 3
        )
        assert c.coverage == 0
        assert c.score == 0.0

    def test_custom_weights(self, d_kurd):
        matcher = ScaleMatcher(MatchConfig(folded_weight=0.5, popularity_bonus=0.0))
        c = matcher.score_scale(d_kurd, ["D3", "A5"], 0)
        assert c.score == pytest.approx(75.0)


class TestTransposePenalty:
    """Penalty by shift size."""

    @pytest.mark.parametrize("shift,expected", [
        (0, 0), (5, 5), (-5, 5), (7, 5), (-7, 5),
        (1, 15), (-1, 15), (2, 15), (6, 15), (-6, 15), (4, 15),
    ])
    def test_penalty(self, shift, expected):
        assert ScaleMatcher().transpose_penalty(shift) == expected

    def test_monotonic_on_full_coverage(self):
        """With full coverage at every shift, t=0 beats fourths/fifths beats the rest."""
        report = ScaleMatcher().match(["C4", "E4", "G4"], [chromatic_scale()])
        by_shift = {c.transposition: c.score for c in report.candidates}

        assert by_shift[0] == pytest.approx(100.0)
        for shift in (5, -5):
            assert by_shift[shift] == pytest.approx(95.0)
        for shift in (1, -1, 2, -2, 3, -3, 4, -4, 6, -6):
            assert by_shift[shift] == pytest.approx(85.0)
        assert by_shift[0] > by_shift[5] > by_shift[1]


class TestMatch:
    """Full matching runs."""

    def test_candidate_count_and_order(self):
        library = default_library()
        report = ScaleMatcher().match(D_KURD_NOTES, library, "D Minor")

        assert len(report.candidates) == 13 * len(library)
        assert [c.transposition for c in report.candidates[:13]] == list(range(-6, 7))
        assert report.candidates[0].scale_id == library.ids[0]
        assert report.candidates[-1].scale_id == library.ids[-1]

    def test_d_kurd_variants_tie(self):
        report = ScaleMatcher().match(D_KURD_NOTES, default_library(), "D Minor")
        for scale_id in ("d_kurd_9", "d_kurd_10", "d_kurd_12"):
            assert candidate_at(report, scale_id, 0).score == pytest.approx(113.0)

    def test_empty_input(self):
        report = ScaleMatcher().match([], [chromatic_scale(popularity=1.0)])

        assert report.input_notes == ()
        assert all(c.coverage == 0 for c in report.candidates)
        assert candidate_at(report, "chromatic", 0).score == pytest.approx(3.0)
        assert candidate_at(report, "chromatic", 1).score == 0.0

    def test_malformed_names_are_dropped(self):
        report = ScaleMatcher().match(["D3", "A3", "Q9", "Bx4"], default_library())
        assert report.input_notes == ("D3", "A3")
        assert report.dropped_note_count == 2

    def test_unknown_key_disables_bonus(self):
        report = ScaleMatcher().match(D_KURD_NOTES, default_library(), "Unknown")
        assert all(c.key_bonus == 0 for c in report.candidates)

    def test_duplicates_collapse(self):
        matcher = ScaleMatcher()
        once = matcher.match(D_KURD_NOTES, default_library())
        twice = matcher.match(D_KURD_NOTES * 2, default_library())
        assert once.candidates == twice.candidates


class TestMatchTracks:
    """Matching pooled melody tracks."""

    def test_only_melody_tracks_count(self):
        def track(track_id, pitches, role):
            notes = tuple(
                NoteEvent(pitch_midi=p, start_time=float(i), duration=0.5)
                for i, p in enumerate(pitches)
            )
            return Track(id=track_id, name=str(track_id), notes=notes, role=role)

        tracks = [
            track(0, [50, 57], Role.MELODY),
            track(1, [58, 60], Role.MELODY),
            track(2, [61, 63], Role.HARMONY),
        ]
        report = ScaleMatcher().match_tracks(tracks, default_library())
        assert report.input_notes == ("D3", "A3", "A#3", "C4")
