"""
Root Typer application for the ebdeploy CLI.
"""

from __future__ import annotations

from enum import Enum

import typer
from pydantic import ValidationError
from typer import Typer

from ebdeploy.cli.deploy import deploy, status
from ebdeploy.core.logging import configure_logging
from ebdeploy.core.settings import EbDeploySettings


class LogLevel(str, Enum):
    """Accepted values of ``--log-level``."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


app = Typer(
    name="ebdeploy",
    help="ebdeploy - deploy application bundles to AWS Elastic Beanstalk.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("ebdeploy")
        except PackageNotFoundError:
            from ebdeploy import __version__ as v
        typer.echo(f"ebdeploy {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: LogLevel | None = typer.Option(
        None, "--log-level", "-l", case_sensitive=False, help="Log level (default: EBDEPLOY_LOG_LEVEL or INFO)."
    ),
    json_logs: bool | None = typer.Option(None, "--json-logs/--console-logs", help="Force JSON or console log output."),
) -> None:
    """ebdeploy CLI - upload, register, deploy and verify."""
    try:
        settings = EbDeploySettings()
    except ValidationError as exc:
        typer.echo(f"Invalid EBDEPLOY_* setting: {exc}", err=True)
        raise typer.Exit(2) from exc
    configure_logging(
        level=log_level.value if log_level is not None else settings.log_level,
        json_format=json_logs if json_logs is not None else settings.json_logs,
        service=settings.service_name,
    )


app.command("deploy")(deploy)
app.command("status")(status)


if __name__ == "__main__":
    app()
