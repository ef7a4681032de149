"""
CLI: ``ebdeploy deploy`` / ``ebdeploy status``.

Usage::

    ebdeploy deploy --config deploy.json                  # options from a JSON file
    ebdeploy deploy -a my-app -e my-app.elasticbeanstalk.com -r us-east-1 \\
        -s dist/my-app-1.2.0.zip --health-page /health --deploy-type swapToNew

    ebdeploy deploy -c deploy.json --swap-timeout 1200    # override one wait

    ebdeploy status -a my-app -r us-east-1                # list environments

Flags override values from ``--config``. The JSON file uses the task
option names (``applicationName``, ``environmentCNAME``, ``s3.bucket`` ...).
Exit status is 0 when the deployment is verified, 1 when it fails and 2 for
usage or unreadable ``--config`` errors.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ebdeploy.core.errors import DeployError
from ebdeploy.deploy.client import Boto3ControlPlane
from ebdeploy.deploy.results import DeploymentResult
from ebdeploy.deploy.workflow import run_deploy_task

console = Console()
err_console = Console(stderr=True)

_STATUS_STYLE = {"passed": "green", "failed": "red", "skipped": "dim"}


def load_options(config: Path | None) -> dict[str, Any]:
    """Read task options from a JSON file."""
    if config is None:
        return {}
    try:
        data = json.loads(config.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        err_console.print(f"[red]Cannot read config {config}: {escape(str(exc))}[/red]")
        raise typer.Exit(2) from exc
    if not isinstance(data, dict):
        err_console.print(f"[red]Config {config} must contain a JSON object[/red]")
        raise typer.Exit(2)
    return data


def merge_options(base: dict[str, Any], **flags: Any) -> dict[str, Any]:
    """Overlay CLI flags (None = not given) on options from the config file."""
    options = dict(base)
    s3 = dict(options.get("s3") or {})
    for name, value in flags.items():
        if value is None:
            continue
        if name in ("bucket", "key"):
            s3[name] = value
        else:
            options[name] = value
    if s3:
        options["s3"] = s3
    return options


def render_result(result: DeploymentResult) -> None:
    table = Table(title=f"Deployment {result.run_id}")
    table.add_column("Stage", style="cyan")
    table.add_column("Status")
    table.add_column("Duration", justify="right")
    table.add_column("Error")
    for stage in result.stages:
        style = _STATUS_STYLE.get(stage.status, "")
        table.add_row(
            escape(stage.name),
            f"[{style}]{stage.status}[/{style}]",
            f"{stage.duration_seconds:.1f}s",
            escape((stage.error or {}).get("message", "")),
        )
    console.print(table)

    if result.new_environment_name:
        console.print(
            f"CNAME [bold]{result.environment_cname}[/bold] now served by "
            f"[bold]{result.new_environment_name}[/bold] "
            f"(previous environment {result.environment_name} left running)"
        )
    if result.succeeded:
        console.print(f"[green]✓ {escape(result.summary)}[/green]")
    else:
        message = (result.error or {}).get("message", result.summary)
        err_console.print(f"[red]✗ Deployment failed: {escape(message)}[/red]")


def deploy(
    config: Path | None = typer.Option(None, "--config", "-c", help="JSON file with task options."),
    application: str | None = typer.Option(None, "--application", "-a", help="Elastic Beanstalk application name."),
    cname: str | None = typer.Option(None, "--cname", "-e", help="CNAME of the target environment."),
    region: str | None = typer.Option(None, "--region", "-r", help="AWS region."),
    source_bundle: str | None = typer.Option(None, "--source-bundle", "-s", help="Path to the bundle to deploy."),
    health_page: str | None = typer.Option(None, "--health-page", help="Health page path, e.g. /health."),
    health_page_contents: str | None = typer.Option(None, "--health-page-contents", help="Exact expected health page body."),
    health_page_regex: str | None = typer.Option(None, "--health-page-regex", help="Pattern the health page body must match."),
    version_label: str | None = typer.Option(None, "--version-label", help="Version label (default: bundle name)."),
    version_description: str | None = typer.Option(None, "--version-description", help="Version description."),
    deploy_type: str | None = typer.Option(None, "--deploy-type", "-t", help="inPlace (default) or swapToNew."),
    s3_bucket: str | None = typer.Option(None, "--s3-bucket", help="Bucket for the bundle (default: application name)."),
    s3_key: str | None = typer.Option(None, "--s3-key", help="Key for the bundle (default: bundle file name)."),
    access_key_id: str | None = typer.Option(None, "--access-key-id", help="AWS access key (default: AWS_ACCESS_KEY_ID)."),
    secret_access_key: str | None = typer.Option(None, "--secret-access-key", help="AWS secret key (default: AWS_SECRET_ACCESS_KEY)."),
    deploy_interval: float | None = typer.Option(None, "--deploy-interval", help="Seconds between in-place status checks (default 5)."),
    deploy_timeout: float | None = typer.Option(None, "--deploy-timeout", help="In-place convergence timeout in seconds (default 120)."),
    swap_interval: float | None = typer.Option(None, "--swap-interval", help="Seconds between new-environment status checks (default 20)."),
    swap_timeout: float | None = typer.Option(None, "--swap-timeout", help="New-environment convergence timeout in seconds (default 600)."),
    health_interval: float | None = typer.Option(None, "--health-interval", help="Seconds between health page retries (default 5)."),
    health_timeout: float | None = typer.Option(None, "--health-timeout", help="Health page timeout in seconds (default 300)."),
    json_out: bool = typer.Option(False, "--json", help="Output the result as JSON."),
) -> None:
    """Upload a bundle, register a version, deploy it and verify health."""
    options = merge_options(
        load_options(config),
        applicationName=application,
        environmentCNAME=cname,
        region=region,
        sourceBundle=source_bundle,
        healthPage=health_page,
        healthPageContents=health_page_contents,
        healthPageRegex=health_page_regex,
        versionLabel=version_label,
        versionDescription=version_description,
        deployType=deploy_type,
        bucket=s3_bucket,
        key=s3_key,
        accessKeyId=access_key_id,
        secretAccessKey=secret_access_key,
        deployInterval=deploy_interval,
        deployTimeout=deploy_timeout,
        swapInterval=swap_interval,
        swapTimeout=swap_timeout,
        healthInterval=health_interval,
        healthTimeout=health_timeout,
    )

    result = asyncio.run(run_deploy_task(options))

    if json_out:
        console.print_json(result.model_dump_json())
    else:
        render_result(result)

    if not result.succeeded:
        raise typer.Exit(1)


def status(
    application: str = typer.Option(..., "--application", "-a", help="Elastic Beanstalk application name."),
    region: str = typer.Option(..., "--region", "-r", help="AWS region."),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """List the application's environments with status and health."""
    try:
        client = Boto3ControlPlane(region)
        environments = asyncio.run(client.describe_environments(application, include_deleted=False))
    except DeployError as exc:
        err_console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc

    if json_out:
        console.print_json(json.dumps([env.__dict__ for env in environments]))
        return

    table = Table(title=f"Environments of {application}")
    table.add_column("Name", style="cyan")
    table.add_column("CNAME")
    table.add_column("Version")
    table.add_column("Status")
    table.add_column("Health")
    for env in environments:
        health_style = {"Green": "green", "Yellow": "yellow", "Red": "red"}.get(env.health, "dim")
        table.add_row(
            env.name,
            env.cname,
            env.version_label or "",
            env.status,
            f"[{health_style}]{env.health}[/{health_style}]",
        )
    console.print(table)
