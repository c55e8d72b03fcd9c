import sys
from pathlib import Path
from typing import Optional

import typer

from polyglotpkg.config import PackagerOptions
from polyglotpkg.errors import PackagingError, PolyglotError
from polyglotpkg.events import Events
from polyglotpkg.logger import setup_logger
from polyglotpkg.packager import Packager
from polyglotpkg.runtime.action_type import ActionType
from polyglotpkg.runtime.discover import determine_action_type


app = typer.Typer(
    name="polyglotpkg",
    help="polyglotpkg: package Node.js, Python and PowerShell projects into action bundles",
    add_completion=False,
)

PROGRESS_MESSAGES = {
    Events.COMPILE_START: "Compiling project...",
    Events.DEPENDENCIES_START: "Bundling dependencies...",
    Events.BUNDLE_START: "Packaging project...",
}

@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
):

    setup_logger(verbose=verbose)

@app.command()
def detect(
    workspace: Path = typer.Argument(
        Path("."),
        help="Project root to inspect",
    ),
):

    try:
        action_type = determine_action_type(workspace)
    except PolyglotError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        sys.exit(exc.exit_code)

    if action_type is ActionType.UNKNOWN:
        typer.secho(
            f"Error: unsupported project type in {workspace}",
            fg=typer.colors.RED,
            err=True,
        )
        sys.exit(3)

    typer.echo(action_type.value)

@app.command()
def package(
    workspace: Path = typer.Argument(
        Path("."),
        help="Project root to package",
    ),
    out: str = typer.Option(
        "out",
        "--out",
        "-o",
        envvar="POLYGLOTPKG_OUT",
        help="Staging directory, relative to the workspace",
    ),
    bundle: str = typer.Option(
        "dist/bundle.zip",
        "--bundle",
        "-b",
        envvar="POLYGLOTPKG_BUNDLE",
        help="Bundle archive path, relative to the workspace",
    ),
    runtime: Optional[ActionType] = typer.Option(
        None,
        "--runtime",
        "-r",
        envvar="POLYGLOTPKG_RUNTIME",
        case_sensitive=False,
        help="Skip detection and package for this runtime",
    ),
    skip_vro: bool = typer.Option(
        False,
        "--skip-vro/--with-vro",
        envvar="POLYGLOTPKG_SKIP_VRO",
        help="Skip the vro metadata directory",
    ),
    show_output: bool = typer.Option(
        False,
        "--show-output",
        help="Stream compiler and package manager output to stderr",
    ),
):

    try:
        options = PackagerOptions.for_workspace(
            workspace,
            out=out,
            bundle=bundle,
            skip_metadata_packaging=skip_vro,
            runtime_override=runtime,
            progress_sink=sys.stderr if show_output else None,
        )

        packager = Packager()
        for event, message in PROGRESS_MESSAGES.items():
            packager.once(event, lambda message=message: typer.echo(message))

        archive = packager.package_project(options)

        typer.echo("Build complete!")
        typer.echo(f"Bundle created at: {archive}")
        if not options.skip_metadata_packaging:
            typer.echo(f"Metadata written to: {options.metadata_output_path}")

    except PackagingError as exc:
        typer.secho(
            f"Error during {exc.stage}: {exc.cause}",
            fg=typer.colors.RED,
            err=True,
        )
        sys.exit(exc.exit_code)

    except PolyglotError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        sys.exit(exc.exit_code)

    except Exception:
        typer.secho(
            "Internal error occurred. Run with --verbose for details.",
            fg=typer.colors.RED,
            err=True,
        )
        raise

def run_cli() -> None:
    app()


if __name__ == "__main__":
    run_cli()
