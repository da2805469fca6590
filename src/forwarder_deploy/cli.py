"""CLI interface for the Dynatrace Azure Log Forwarder deployment"""

import logging
from pathlib import Path
from typing import Optional

import click

from forwarder_deploy.application.orchestrator import DeploymentOrchestrator
from forwarder_deploy.constants import DEPLOYMENT_STATUS_MARKER, VALIDATION_STATUS_MARKER
from forwarder_deploy.errors import DeploymentError, RetryExhaustedError
from forwarder_deploy.infrastructure.config.config_manager import ConfigManager
from forwarder_deploy.infrastructure.status_file import write_status_marker

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    logging.getLogger().setLevel(level)
    # urllib3 logs full request lines at DEBUG
    logging.getLogger("urllib3").setLevel(logging.INFO)


def _die(message: str, verbose: bool = False, exc: Optional[Exception] = None) -> None:
    """Exit with a user-friendly error message"""
    if exc is not None:
        logger.error(message, exc_info=verbose)
    else:
        logger.error(message)
    raise click.ClickException(message)


def deployment_options(func):
    """Options shared by validate and deploy; each overrides config file and environment"""
    options = [
        click.option("--deployment-name", help="Prefix for created resources (3-20 lowercase letters/digits)"),
        click.option("--resource-group", help="Target Azure resource group"),
        click.option("--location", help="Azure region, e.g. westeurope"),
        click.option("--target-url", help="Dynatrace environment URL or existing ActiveGate URL"),
        click.option("--api-token", help="Dynatrace API token with logs.ingest permission"),
        click.option("--paas-token", help="Dynatrace PaaS token (required to deploy a new ActiveGate)"),
        click.option("--event-hub-connection-string", help="Connection string of the source Event Hub"),
        click.option("--filter-config", help="Log filter, key=value pairs separated by ';'"),
        click.option(
            "--active-gate",
            type=click.Choice(["existing", "deploy"], case_sensitive=False),
            help="Send logs to an existing ActiveGate or deploy a new one",
        ),
        click.option(
            "--skip-connectivity-check",
            is_flag=True,
            help="Do not probe the Dynatrace target before deploying",
        ),
        click.option(
            "--status-file",
            type=click.Path(dir_okay=False, path_type=Path),
            help="File receiving the status marker (default: $AZ_SCRIPTS_OUTPUT_PATH)",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _load_config(ctx, overrides: dict) -> ConfigManager:
    ctx.obj["status_file"] = overrides.pop("status_file", None)
    active_gate = overrides.pop("active_gate", None)
    if active_gate:
        overrides["use_existing_active_gate"] = active_gate.lower() == "existing"
    # an absent flag must not override the config file or environment
    if not overrides.get("skip_connectivity_check"):
        overrides.pop("skip_connectivity_check", None)
    return ConfigManager(config_path=ctx.obj.get("config_path"), overrides=overrides)


def _output_deployment_results(outputs) -> None:
    click.echo("\n" + "=" * 80)
    click.echo("Deployment outputs")
    click.echo("=" * 80)
    click.echo(f"Function App: {outputs.function_app_name}")
    click.echo(f"Function App URL: {outputs.function_app_url}")
    click.echo(f"Target URL: {outputs.target_url}")
    if outputs.event_hub:
        click.echo(f"Event Hub: {outputs.event_hub}")
    if outputs.subnet_id:
        click.echo(f"Subnet: {outputs.subnet_id}")
    if outputs.identity_id:
        click.echo(f"Managed identity: {outputs.identity_id}")
    if outputs.active_gate_url:
        click.echo(f"ActiveGate: {outputs.active_gate_url}")
    click.echo("")
    click.echo(outputs.next_steps())


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to .dt-forwarder.yml config file",
)
@click.pass_context
def cli(ctx, verbose: bool, config: Path):
    """Deploy the Dynatrace Azure Log Forwarder"""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose


@cli.command()
@deployment_options
@click.pass_context
def validate(ctx, **overrides):
    """Validate parameters and connectivity without creating resources."""
    verbose = ctx.obj.get("verbose", False)

    try:
        config_manager = _load_config(ctx, overrides)
        orchestrator = DeploymentOrchestrator(config_manager.config)
        orchestrator.validate()
        write_status_marker(VALIDATION_STATUS_MARKER, ctx.obj.get("status_file"))
    except DeploymentError as e:
        _die(str(e), verbose=verbose, exc=e)
    except Exception as e:
        _die(f"Fatal error: {e}", verbose=verbose, exc=e)

    click.echo("Validation completed!")


@cli.command()
@deployment_options
@click.pass_context
def deploy(ctx, **overrides):
    """Validate parameters, provision Azure resources and deploy the forwarder."""
    verbose = ctx.obj.get("verbose", False)

    try:
        config_manager = _load_config(ctx, overrides)
        orchestrator = DeploymentOrchestrator(config_manager.config)
        outputs = orchestrator.deploy()
        write_status_marker(DEPLOYMENT_STATUS_MARKER, ctx.obj.get("status_file"))
    except RetryExhaustedError as e:
        _die(f"{e}. Check the output of the last attempt above.", verbose=verbose, exc=e)
    except DeploymentError as e:
        _die(str(e), verbose=verbose, exc=e)
    except Exception as e:
        _die(f"Fatal error: {e}", verbose=verbose, exc=e)

    _output_deployment_results(outputs)


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()
