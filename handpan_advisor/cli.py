"""Command-line interface for Handpan Advisor.

Provides commands for:
- analyze: Track roles, key and handpan scale recommendation for a MIDI file
- key: Key detection only
- scales: List the scale catalogue
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

app = typer.Typer(
    name="handpan-advisor",
    help="Recommend a handpan scale for a MIDI performance",
    rich_markup_mode="markdown",
)
console = Console()


@dataclass
class StageTimings:
    """Wall-clock time spent in each analysis stage."""

    stages: Dict[str, float] = field(default_factory=dict)

    @contextmanager
    def measure(self, stage: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            self.stages[stage] = time.perf_counter() - start

    def print_summary(self) -> None:
        console.print("\n[bold]Timing Summary:[/bold]")
        for stage, duration in self.stages.items():
            console.print(f"  {stage}: {duration * 1000:.1f}ms")
        total = sum(self.stages.values())
        console.print(f"  [bold]Total: {total * 1000:.1f}ms[/bold]")


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_library(scales: Optional[Path]):
    from .core import ScaleLibraryError
    from .library import ScaleLibrary, default_library

    try:
        return ScaleLibrary.from_json(scales) if scales else default_library()
    except ScaleLibraryError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _load_config(config: Optional[Path]):
    from .config import AnalyzerConfig

    if config is None:
        return AnalyzerConfig()
    try:
        return AnalyzerConfig.from_json(config)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error: invalid config {config}: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def analyze(
    input_file: Path = typer.Argument(..., help="Input MIDI file"),
    mode: str = typer.Option(
        "standard", "-m", "--mode", help="Ranking mode: standard or pro"
    ),
    top: int = typer.Option(5, "-n", "--top", help="Number of candidates to list"),
    melody_track: Optional[int] = typer.Option(
        None, "--melody-track", help="Force this track id to be the melody"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    output: Optional[Path] = typer.Option(
        None, "-o", "--output", help="Write the JSON result to a file"
    ),
    export_midi: Optional[Path] = typer.Option(
        None, "--export-midi", help="Write the melody transposed for the recommended scale"
    ),
    scales: Optional[Path] = typer.Option(
        None, "--scales", help="Custom scale catalogue (JSON)"
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", help="Analyzer config overrides (JSON)"
    ),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose output"),
):
    """Classify tracks, detect the key and recommend a handpan scale.

    Examples:
        handpan-advisor analyze song.mid
        handpan-advisor analyze song.mid --mode pro --top 10
        handpan-advisor analyze song.mid --melody-track 2 --json
    """
    from .core import MatchMode, MidiLoadError, Role
    from .output import MIDIExporter, song_to_json
    from .pipeline import SongAnalyzer

    _setup_logging(verbose)

    try:
        match_mode = MatchMode(mode.lower())
    except ValueError:
        console.print(f"[red]Error: unknown mode '{mode}' (use standard or pro)[/red]")
        raise typer.Exit(1)

    if not input_file.exists():
        console.print(f"[red]Error: File not found: {input_file}[/red]")
        raise typer.Exit(1)

    analyzer = SongAnalyzer(_load_library(scales), _load_config(config))
    timings = StageTimings()

    try:
        with timings.measure("Analysis"):
            song = analyzer.analyze_file(input_file, match_mode)
    except MidiLoadError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if melody_track is not None:
        current = [t.id for t in song.melody_tracks if t.id != melody_track]
        roles = {track_id: Role.IGNORE for track_id in current}
        roles[melody_track] = Role.MELODY
        try:
            with timings.measure("Re-match"):
                song = analyzer.override_roles(song, roles)
        except KeyError:
            console.print(f"[red]Error: no track with id {melody_track}[/red]")
            raise typer.Exit(1)

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(song_to_json(song, include_notes=False), encoding="utf-8")

    if export_midi:
        if song.has_recommendation:
            MIDIExporter().export_transposed(song, export_midi)
        else:
            console.print("[yellow]No melody to export[/yellow]")

    if as_json:
        console.print_json(song_to_json(song, include_notes=False))
        return

    console.print(f"\n[bold blue]Analysis: {song.name}[/bold blue]")
    console.print(f"   BPM: {song.bpm:.1f}   Duration: {song.duration:.2f}s")
    _show_tracks_table(analyzer, song)

    console.print(f"\n[cyan]Key:[/cyan] [green]{song.detected_key}[/green]")

    if not song.has_recommendation:
        console.print("\n[yellow]No melody track found - no recommendation.[/yellow]")
        return

    library = analyzer.library
    scale = library.get(song.suggested_scale_id)
    best = song.best_match
    console.print(
        f"\n[bold green]Recommended: {scale.name}[/bold green] "
        f"(transpose {best.transposition:+d}, score {best.score:.1f}, {match_mode.value} mode)"
    )
    console.print(
        f"   Exact: {best.exact_match_count:g}   Folded: {best.folded_match_count:g}   "
        f"Coverage: {best.coverage:.0%}"
    )
    console.print(
        f"   Penalty: -{best.transpose_penalty:g}   Key bonus: +{best.key_bonus:g}   "
        f"Popularity bonus: +{best.popularity_bonus:g}"
    )
    if best.missed_notes:
        console.print(f"   [yellow]Missed: {', '.join(best.missed_notes)}[/yellow]")
    if song.dropped_note_count:
        console.print(f"   [dim]{song.dropped_note_count} unnameable notes dropped[/dim]")

    _show_candidates_table(analyzer.top_candidates(song, top))

    if verbose:
        timings.print_summary()


@app.command()
def key(
    input_file: Path = typer.Argument(..., help="Input MIDI file"),
    all_tracks: bool = typer.Option(
        False, "--all-tracks", help="Use every pitched track, not just the melody"
    ),
):
    """Detect the key of a MIDI file's melody."""
    from .core import MidiLoadError, Role
    from .inference import KeyDetector, TrackClassifier
    from .input import MidiLoader

    if not input_file.exists():
        console.print(f"[red]Error: File not found: {input_file}[/red]")
        raise typer.Exit(1)

    try:
        parsed = MidiLoader().load(input_file)
    except MidiLoadError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    tracks = TrackClassifier().classify(parsed.tracks)
    if all_tracks:
        notes = [n for t in tracks if not t.is_percussion for n in t.notes]
    else:
        notes = [n for t in tracks if t.role is Role.MELODY for n in t.notes]

    key_info = KeyDetector().analyze(notes)
    console.print(f"[green]Key: {key_info.label}[/green]")
    if key_info.is_known:
        console.print(f"   Confidence: {key_info.confidence:.2f}")
        console.print(f"   Ambiguity: {key_info.ambiguity_score:.2f}")
        console.print(f"   Relative: {key_info.relative_key}")
        if key_info.alternatives:
            alternatives = ", ".join(c.name for c in key_info.alternatives)
            console.print(f"   Alternatives: {alternatives}")


@app.command("scales")
def list_scales(
    scales: Optional[Path] = typer.Option(
        None, "--scales", help="Custom scale catalogue (JSON)"
    ),
):
    """List the handpan scale catalogue."""
    library = _load_library(scales)

    table = Table(title=f"Scale Catalogue ({len(library)} scales)")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Ding", style="yellow")
    table.add_column("Notes", justify="right")
    table.add_column("Popularity", justify="right", style="magenta")
    table.add_column("Tones")

    for scale in library:
        tones = " ".join(scale.bottom_notes + scale.top_notes)
        table.add_row(
            scale.id,
            scale.name,
            scale.root,
            str(scale.total_note_count),
            f"{scale.popularity_score:.2f}",
            tones,
        )

    console.print(table)


def _show_tracks_table(analyzer, song):
    """Display tracks with their roles and features."""
    stats = analyzer.classifier.track_stats(song.tracks)

    table = Table(title="Tracks")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Ch", justify="right")
    table.add_column("Notes", justify="right")
    table.add_column("Range", justify="right")
    table.add_column("Polyphony", justify="right")
    table.add_column("Role", style="green")

    for track in song.tracks:
        s = stats[track.id]
        table.add_row(
            str(track.id),
            track.name,
            str(track.channel + 1),
            str(track.note_count),
            str(s.pitch_range),
            f"{s.average_polyphony:.2f}",
            track.role.value,
        )

    console.print(table)


def _show_candidates_table(candidates):
    """Display ranked candidates with their score breakdown."""
    table = Table(title="Top Candidates")
    table.add_column("#", justify="right")
    table.add_column("Scale", style="cyan")
    table.add_column("T", justify="right")
    table.add_column("Notes", justify="right")
    table.add_column("Exact", justify="right")
    table.add_column("Folded", justify="right")
    table.add_column("Penalty", justify="right", style="red")
    table.add_column("Bonus", justify="right", style="green")
    table.add_column("Score", justify="right", style="magenta")

    for rank, c in enumerate(candidates, start=1):
        table.add_row(
            str(rank),
            c.scale_name,
            f"{c.transposition:+d}",
            str(c.total_note_count),
            f"{c.exact_match_count:g}",
            f"{c.folded_match_count:g}",
            f"{c.transpose_penalty:g}",
            f"{c.key_bonus + c.popularity_bonus:g}",
            f"{c.score:.1f}",
        )

    console.print(table)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
