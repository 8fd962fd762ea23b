"""podstage CLI: daemon-less pod lifecycle management."""

from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console

from podstage import __version__

from .commands import gc, init, list_cmd, run_prepared, status
from .config import load_config, set_active_config
from .logging import configure_logging
from .output import OutputContext, set_output_context


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"podstage {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="podstage",
    help="Daemon-less pod lifecycle: status, listing and garbage collection",
    no_args_is_help=True,
)


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v, -vv)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-error output",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in JSON format for automation",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file (default: $PODSTAGE_CONFIG or /etc/podstage/config.toml)",
    ),
    pods_dir: Path | None = typer.Option(
        None,
        "--dir",
        "-d",
        help="Pod directory root, overrides the config file",
    ),
) -> None:
    """podstage - pod lifecycle without a daemon."""
    configure_logging(
        verbosity=verbose,
        quiet=quiet,
        no_color=no_color,
    )
    set_output_context(
        OutputContext(console=Console(no_color=no_color, highlight=False), json_mode=json_output)
    )

    try:
        config = load_config(config_path)
    except (OSError, ValueError) as e:
        # ValidationError and TOMLDecodeError are both ValueErrors
        kind = "Invalid config" if isinstance(e, ValueError) else "Cannot read config"
        detail = e.errors()[0]["msg"] if isinstance(e, ValidationError) else str(e)
        typer.echo(f"{kind}: {detail}", err=True)
        raise typer.Exit(1) from None

    if pods_dir is not None:
        config.pods.dir = pods_dir
    set_active_config(config)


app.command()(init)
app.command()(status)
app.command("list")(list_cmd)
app.command()(gc)
app.command("run-prepared")(run_prepared)


if __name__ == "__main__":
    app()
