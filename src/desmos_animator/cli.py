"""CLI interface for desmos-animator."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from .animation_pipeline import RenderController, render_animation
from .calculator.playwright_calculator import PlaywrightCalculator
from .config import AppConfig, RenderSettings
from .constants import (
    ANIMATE_VARIABLE,
    DEFAULT_DURATION,
    DEFAULT_FRAMES,
    DEFAULT_OUTPUT,
    DEFAULT_RESOLUTION,
    FOLDER_TITLE,
)
from .errors import DesmosAnimatorError
from .output import media_type_for_output_format, resolve_recorder, supported_output_formats
from .output.base import VideoRecorder
from .scheduling import FrameScheduler, RealTimeScheduler
from .session import bootstrap

# Load environment variables from .env file
load_dotenv()

console = Console()
err_console = Console(stderr=True)
SUPPORTED_OUTPUT_FORMATS_TEXT = ", ".join(supported_output_formats()).upper()


class CLIError(Exception):
    """Base exception for CLI errors with user-friendly messages."""
    pass


def render(
    state_file: str = typer.Option(
        None,
        "--state",
        "-s",
        help="Load a saved Desmos graph state (JSON from Calc.getState()) before rendering",
    ),
    out: str = typer.Option(
        DEFAULT_OUTPUT,
        "--output",
        "-out",
        "-o",
        help=f"Output video file ({SUPPORTED_OUTPUT_FORMATS_TEXT})",
    ),
    duration: float = typer.Option(
        DEFAULT_DURATION,
        "--duration",
        "-d",
        help="Playback length of the video in seconds",
    ),
    frames: int = typer.Option(
        DEFAULT_FRAMES,
        "--frames",
        "-f",
        help="Number of samples taken across the time range",
    ),
    resolution: float = typer.Option(
        DEFAULT_RESOLUTION,
        "--resolution",
        "-r",
        help="Pixels per calculator unit",
    ),
    realtime: bool = typer.Option(
        False,
        "--realtime",
        help="Composite frames against the wall clock instead of a virtual clock",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each evaluation, screenshot and encoder step",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every captured frame"),
) -> None:
    """
    Render the time sweep of a Desmos graph to a video file.

    Examples:
      # Render a saved graph with default settings
      desmos-animator render --state graph.json

      # Ten second GIF at 20 pixels per unit
      desmos-animator render -s graph.json -d 10 -r 20 -o sweep.gif
    """
    try:
        _configure_logging(verbose)
        settings = _build_settings(duration, frames, resolution)
        config = _load_config(headless=True, timeout=timeout)
        state = _load_state(state_file) if state_file else None
        recorder = _resolve_recorder(out)
        scheduler = RealTimeScheduler(config.timeout) if realtime else None

        console.print("[bold blue]Starting Desmos...[/bold blue]")
        try:
            data = asyncio.run(_render_once(config, state, settings, recorder, scheduler))
        except DesmosAnimatorError as e:
            raise CLIError(f"Render failed: {e}")

        _write_output(recorder, data)

    except CLIError as e:
        err_console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    except Exception as e:
        err_console.print(f"[bold red]Unexpected error:[/bold red] {e}")
        sys.exit(1)


def watch(
    state_file: str = typer.Option(
        None,
        "--state",
        "-s",
        help="Load a saved Desmos graph state (JSON from Calc.getState()) on startup",
    ),
    out: str = typer.Option(
        DEFAULT_OUTPUT,
        "--output",
        "-out",
        "-o",
        help=f"Output video file written after every render ({SUPPORTED_OUTPUT_FORMATS_TEXT})",
    ),
    duration: float = typer.Option(DEFAULT_DURATION, "--duration", "-d"),
    frames: int = typer.Option(DEFAULT_FRAMES, "--frames", "-f"),
    resolution: float = typer.Option(DEFAULT_RESOLUTION, "--resolution", "-r"),
    timeout: float | None = typer.Option(None, "--timeout"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """
    Open an interactive calculator and render whenever the animate action runs.

    Drag the green corner points to choose the captured region, then click
    the animate action in the Bounds folder. Close the browser to exit.
    """
    try:
        _configure_logging(verbose)
        settings = _build_settings(duration, frames, resolution)
        config = _load_config(headless=False, timeout=timeout)
        state = _load_state(state_file) if state_file else None
        recorder = _resolve_recorder(out)

        console.print("[bold blue]Opening Desmos...[/bold blue]")
        try:
            asyncio.run(_watch(config, state, settings, recorder))
        except DesmosAnimatorError as e:
            raise CLIError(f"Setup failed: {e}")

    except CLIError as e:
        err_console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    except Exception as e:
        err_console.print(f"[bold red]Unexpected error:[/bold red] {e}")
        sys.exit(1)


async def _render_once(
    config: AppConfig,
    state: dict[str, Any] | None,
    settings: RenderSettings,
    recorder: VideoRecorder,
    scheduler: FrameScheduler | None,
) -> bytes:
    calculator = await PlaywrightCalculator.launch(config, state)
    try:
        session = await bootstrap(calculator, config.timeout)
        viewport = session.viewport()
        console.print(
            f"[bold blue]Rendering {settings.frames} frames of "
            f"[{viewport.left:g}, {viewport.right:g}] x [{viewport.bottom:g}, {viewport.top:g}]...[/bold blue]"
        )
        return await render_animation(session, settings, recorder, scheduler)
    finally:
        await calculator.close()


async def _watch(
    config: AppConfig,
    state: dict[str, Any] | None,
    settings: RenderSettings,
    recorder: VideoRecorder,
) -> None:
    calculator = await PlaywrightCalculator.launch(config, state)
    try:
        session = await bootstrap(calculator, config.timeout)
        controller = RenderController(session, settings, recorder)
        await controller.start()
        console.print(
            f"[green]✓[/green] Ready. Click the [bold]{ANIMATE_VARIABLE}[/bold] action "
            f"in the {FOLDER_TITLE} folder to render into {recorder.path}"
        )
        await calculator.wait_closed()
        await controller.stop()
        await session.close()
        console.print(f"[green]✓[/green] {controller.completed} render(s) written")
    finally:
        await calculator.close()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True)],
    )


def _build_settings(duration: float, frames: int, resolution: float) -> RenderSettings:
    try:
        return RenderSettings(duration=duration, frames=frames, resolution=resolution)
    except ValueError as e:
        raise CLIError(str(e))


def _load_config(headless: bool, timeout: float | None) -> AppConfig:
    try:
        return AppConfig.from_env(headless=headless, timeout=timeout)
    except ValueError as e:
        raise CLIError(str(e))


def _load_state(file_path: str) -> dict[str, Any]:
    """Load a saved calculator state from a JSON file."""
    console.print(f"[bold blue]Loading state from {file_path}...[/bold blue]")
    try:
        with open(file_path, "r") as f:
            state = json.load(f)
    except FileNotFoundError:
        raise CLIError(f"File '{file_path}' not found")
    except json.JSONDecodeError as e:
        raise CLIError(f"Invalid JSON in '{file_path}': {e}")
    if not isinstance(state, dict):
        raise CLIError(f"'{file_path}' does not contain a calculator state object")
    return state


def _resolve_recorder(output_path: str) -> VideoRecorder:
    try:
        return resolve_recorder(output_path)
    except ValueError as e:
        raise CLIError(str(e))


def _write_output(recorder: VideoRecorder, data: bytes) -> None:
    output_format = Path(recorder.path).suffix[1:].lower()
    console.print(f"[bold blue]Saving to {recorder.path}...[/bold blue]")
    try:
        recorder.write(data)
    except IOError as e:
        raise CLIError(f"Failed to save file '{recorder.path}': {e}")
    console.print(
        f"[green]✓[/green] {media_type_for_output_format(output_format)} saved to {recorder.path}"
    )


app = typer.Typer()
app.command("render")(render)
app.command("watch")(watch)

if __name__ == "__main__":
    app()
