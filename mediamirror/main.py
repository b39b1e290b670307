import typer
from pathlib import Path
from typing import List, Optional

from mediamirror.config.loader import load_config
from mediamirror.infrastructure.logging import setup_logging
from mediamirror.infrastructure.event_bus import EventBus
from mediamirror.infrastructure.file_scanner import DirectoryInventory
from mediamirror.infrastructure.ffprobe import FFprobeAdapter
from mediamirror.infrastructure.ffmpeg import FFmpegAdapter
from mediamirror.infrastructure.housekeeping import HousekeepingService
from mediamirror.pipeline.orchestrator import Orchestrator
from mediamirror.ui.reporter import ConsoleReporter
from mediamirror.domain.errors import MediaMirrorError, StreamValidationError

USAGE = """\
USAGE: mediamirror <target dir> <output dir>
       mediamirror <target dir>
Make a copy of <target dir> inside of <output dir> with all video files transcoded as webm
and all subtitle files converted to webvtt. All other files are copied over as they are.
If there is any reason the directory cannot be easily encoded, we panic before any
encoding or copying is done.
If no output directory is supplied, a dry run is performed where no files are copied or encoded.
"""

app = typer.Typer(help="mediamirror - mirror a media library with videos transcoded to WebM")


def is_help_request(args: List[str]) -> bool:
    """'help' or 'h' with dashes removed, in any case ('--help', '-h', '--HELP', 'help')."""
    return any(arg.replace("-", "").lower() in ("help", "h") for arg in args)


def usage_exit() -> None:
    typer.echo(USAGE)
    raise typer.Exit(code=1)


@app.command(context_settings={
    "help_option_names": [],
    "ignore_unknown_options": True,
    "allow_extra_args": True,
})
def mirror(
    ctx: typer.Context,
    target_dir: Optional[str] = typer.Argument(None, help="Directory to mirror"),
    output_dir: Optional[str] = typer.Argument(None, help="Where the mirror is created (omit for a dry run)"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    threads: Optional[int] = typer.Option(None, "--threads", "-t", help="Override number of parallel encodes"),
    verbose: Optional[bool] = typer.Option(None, "--verbose/--quiet", "-v/-q", help="Per-task start/complete notices"),
    allow_multiple_audio: bool = typer.Option(False, "--allow-multiple-audio", help="Keep every audio stream instead of rejecting such files"),
    strict: bool = typer.Option(False, "--strict", help="Exit with code 1 when any copy/encode task fails"),
    log_path: Optional[Path] = typer.Option(None, "--log-path", help="Path to log file"),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Enable verbose debug logging"),
):
    """Mirror a directory tree, transcoding videos and subtitles."""
    args = [a for a in (target_dir, output_dir) if a is not None] + list(ctx.args)
    if is_help_request(args) or target_dir is None or ctx.args:
        usage_exit()

    try:
        config = load_config(config_path)
        # Apply CLI overrides
        if threads is not None:
            if threads < 1:
                typer.secho("Error: --threads must be at least 1", fg=typer.colors.RED, err=True)
                raise typer.Exit(code=1)
            config.general.threads = threads
        if verbose is not None: config.general.verbose = verbose
        if allow_multiple_audio: config.policy.allow_multiple_audio = True
        if strict: config.general.strict = True
        if log_path is not None: config.general.log_path = str(log_path)
        if debug: config.general.debug = True

        output_path = Path(output_dir) if output_dir is not None else None
        log_path_value = Path(config.general.log_path) if config.general.log_path else None
        # Nothing goes into the output tree until the plan has been validated
        logger = setup_logging(None, debug=config.general.debug, log_path=log_path_value)
        logger.info(
            f"Config: threads={config.general.threads}, verbose={config.general.verbose}, "
            f"strict={config.general.strict}, allow_multiple_audio={config.policy.allow_multiple_audio}"
        )

        bus = EventBus()
        ConsoleReporter(bus)

        orchestrator = Orchestrator(
            config=config,
            event_bus=bus,
            inventory=DirectoryInventory(),
            ffprobe_adapter=FFprobeAdapter(config.tools.ffprobe),
            ffmpeg_adapter=FFmpegAdapter(config.tools.ffmpeg, crf=config.encode.crf, debug=config.general.debug),
            housekeeping=HousekeepingService(),
        )
        plan = orchestrator.plan(Path(target_dir))
        if output_path is not None and log_path_value is None:
            setup_logging(output_path, debug=config.general.debug)
        report = orchestrator.execute(plan, output_path)

    except typer.Exit:
        raise

    except StreamValidationError as e:
        count = len({p for paths in e.violations.values() for p in paths})
        typer.secho(f"Validation failed: {count} file(s) cannot be encoded. Nothing was written.",
                    fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    except (MediaMirrorError, FileNotFoundError, ValueError) as e:
        typer.secho(f"Fatal Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if report.failures:
        typer.secho(f"{len(report.failures)} task(s) failed:", fg=typer.colors.RED, err=True)
        for label, error in report.failures.items():
            typer.secho(f"  {label}: {error}", fg=typer.colors.RED, err=True)
        if config.general.strict:
            raise typer.Exit(code=1)


def run():
    app()


if __name__ == "__main__":
    run()
