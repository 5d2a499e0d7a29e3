"""
pipespy CLI.

Commands:
- log: Live decoding of capture files
- post-process: Offline processing of a complete log (latency histograms)
- demo: Generate sample capture files and a trace log
- config: Configuration management
- version: Version information
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .. import __version__
from ..channel.capture import CaptureFileLayout
from ..config import PipespyConfig, load_config, generate_default_config
from ..core.errors import ChannelError, ErrorCode, LineFormatError, PipespyError
from ..decoder import LoggableStream, idle_strategy, run_decoder
from ..demo import PipelineDemo
from ..latency import LatencyCorrelator, post_process


app = typer.Typer(
    name="pipespy",
    help="Protocol decoder and latency reconstruction for message pipelines",
    add_completion=False,
)
console = Console(stderr=True)
logger = logging.getLogger(__name__)


def _configure_logging(cfg: PipespyConfig) -> None:
    logging.basicConfig(
        level=cfg.logging.level_number,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _load_config_or_exit(config_path: Optional[Path]) -> PipespyConfig:
    """Load and validate configuration; exit 1 when either fails."""
    try:
        cfg = load_config(config_path)
        errors = cfg.validate()
    except (OSError, TypeError, ValueError) as e:
        errors = [str(e)]
    if errors:
        error = PipespyError(ErrorCode.E3001_INVALID_CONFIG, {'errors': '; '.join(errors)})
        console.print(f"[red]Error:[/] {escape(str(error))}")
        raise typer.Exit(1)
    return cfg


# === LOG COMMAND ===

@app.command()
def log(
    directory: Path = typer.Option(..., "-d", "--directory", help="Capture directory", exists=True, file_okay=False),
    receiver: Optional[str] = typer.Option(None, "--receiver", "-r", help="Only this receiving stage"),
    sender: Optional[str] = typer.Option(None, "--sender", "-s", help="Only this sending stage"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Decode begin extensions"),
    batch_limit: Optional[int] = typer.Option(None, "--batch-limit", help="Records per plane per poll"),
    idle_micros: Optional[int] = typer.Option(None, "--idle-micros", help="Sleep between idle passes"),
    once: bool = typer.Option(False, "--once", help="Stop when no more records are available"),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Write lines to file"),
    config_path: Optional[Path] = typer.Option(None, "-c", "--config"),
):
    """Decode capture files into log lines."""
    cfg = _load_config_or_exit(config_path)
    _configure_logging(cfg)

    verbose = verbose or cfg.decoder.verbose
    if batch_limit is None:
        batch_limit = cfg.decoder.batch_limit
    if idle_micros is None:
        idle_micros = cfg.decoder.idle_micros

    try:
        idle = idle_strategy(cfg.decoder.idle_strategy, idle_micros)
    except ValueError as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(1)

    try:
        pairs = CaptureFileLayout.discover(directory)
    except ChannelError as e:
        console.print(f"[red]Error:[/] {escape(str(e.to_error()))}")
        raise typer.Exit(1)

    pairs = [
        (r, s) for r, s in pairs
        if (receiver is None or r == receiver) and (sender is None or s == sender)
    ]
    if not pairs:
        console.print(f"[red]Error:[/] No matching capture files in {directory}")
        raise typer.Exit(1)

    out = open(output, 'w') if output else sys.stdout
    streams = []
    try:
        try:
            for r, s in pairs:
                layout = CaptureFileLayout(directory, r, s)
                streams.append(LoggableStream(r, s, layout, out, verbose=verbose))
        except ChannelError as e:
            for stream in streams:
                stream.close()
            console.print(f"[red]Error:[/] {escape(str(e.to_error()))}")
            raise typer.Exit(1)

        try:
            count = run_decoder(streams, idle, batch_limit=batch_limit, once=once)
        except KeyboardInterrupt:
            console.print("\n[yellow]Stopped[/]")
            return
    finally:
        out.flush()
        if output:
            out.close()

    logger.info(f"Decoded {count} records from {len(pairs)} pairs")


# === POST-PROCESS COMMAND ===

@app.command("post-process")
def post_process_cmd(
    type_: str = typer.Option("sort", "-t", "--type", help="sort* | latency-histogram"),
    input_file: Optional[Path] = typer.Option(None, "-i", "--input-file", help="input-file"),
    output_file: Optional[Path] = typer.Option(None, "-o", "--output-file", help="output-file (defaults to inplace)"),
    config_path: Optional[Path] = typer.Option(None, "-c", "--config"),
):
    """
    Post-process a complete log.

    latency-histogram requires a log sorted by timestamp. Exit codes:
    0=ok, 1=error, 2=malformed input line.
    """
    cfg = _load_config_or_exit(config_path)
    _configure_logging(cfg)

    if type_ in ("sort", "latency-histogram") and input_file is None:
        console.print("[red]Error:[/] --input-file is required")
        raise typer.Exit(1)
    if input_file is not None and not input_file.is_file():
        console.print(f"[red]Error:[/] Input file not found: {input_file}")
        raise typer.Exit(1)

    correlator = LatencyCorrelator(
        highest_trackable_value=cfg.latency.highest_trackable_value,
        significant_digits=cfg.latency.significant_digits,
    )

    try:
        post_process(
            type_,
            input_file,
            output_file,
            sys.stdout,
            correlator=correlator,
            percentiles=cfg.latency.percentiles,
            scaling=cfg.latency.value_unit_scaling,
        )
    except NotImplementedError as e:
        console.print(f"[red]Error:[/] {type_}: {e}")
        raise typer.Exit(1)
    except LineFormatError as e:
        sys.stdout.write(f"{e}\n")
        console.print(f"[red]Error:[/] {escape(str(e.to_error()))}")
        raise typer.Exit(LineFormatError.EXIT_STATUS)


# === DEMO COMMAND ===

@app.command()
def demo(
    output_dir: Path = typer.Option(Path("./demo_output"), "-o", "--output-dir"),
    traces: int = typer.Option(1000, "--traces", help="Traces in the sample log"),
    seed: int = typer.Option(0, "--seed"),
):
    """Generate sample capture files and a sorted trace log."""
    generator = PipelineDemo(seed=seed)

    capture_dir = output_dir / "capture"
    pairs = generator.write_captures(capture_dir)
    for receiver, sender in pairs:
        console.print(f"[green]✓[/] Capture: {sender} -> {receiver}")

    trace_log = output_dir / "trace.log"
    count = generator.write_trace_log(trace_log, traces=traces, uncorrelated=traces // 20)
    console.print(f"[green]✓[/] Trace log: {trace_log} ({count:,} lines)")

    console.print()
    console.print("Try:")
    console.print(f"  pipespy log -d {capture_dir} --verbose --once")
    console.print(f"  pipespy post-process -t latency-histogram -i {trace_log}")


# === CONFIG COMMAND ===

@app.command("config")
def config_cmd(
    action: str = typer.Argument(..., help="Action: init|validate|dump"),
    path: Optional[Path] = typer.Argument(None, help="Config file path"),
):
    """Configuration management."""
    if action == "init":
        typer.echo(generate_default_config())

    elif action == "validate":
        if not path:
            console.print("[red]Path required for validate[/]")
            raise typer.Exit(1)
        try:
            cfg = PipespyConfig.load(path)
        except (OSError, TypeError, ValueError) as e:
            console.print(f"[red]Error:[/] {e}")
            raise typer.Exit(1)
        errors = cfg.validate()
        if errors:
            console.print("[red]Invalid configuration:[/]")
            for e in errors:
                console.print(f"  - {e}")
            raise typer.Exit(1)
        typer.echo(f"Valid: {path}")

    elif action == "dump":
        cfg = PipespyConfig.load(path) if path else load_config()
        typer.echo(cfg.to_yaml())

    else:
        console.print(f"[red]Unknown action:[/] {action}")
        console.print("Valid actions: init, validate, dump")
        raise typer.Exit(1)


# === VERSION COMMAND ===

@app.command()
def version(
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Show detailed info"),
):
    """Show version information."""
    typer.echo(f"pipespy v{__version__}")

    if verbose:
        table = Table(show_header=False, box=None)
        table.add_column("Feature", style="cyan")
        table.add_column("Status", style="green")
        table.add_row("Live decoder", "✓ BEGIN/DATA/END/ABORT, RESET/WINDOW")
        table.add_row("Begin extensions", "✓ http (sender prefix), tcp (receiver)")
        table.add_row("Latency engine", "✓ HDR histograms per stage")
        table.add_row("Sort", "○ Not implemented")
        Console().print(table)


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
