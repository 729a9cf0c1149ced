"""CLI entry point for the similar products service.

``lookup`` resolves one product against the configured catalog and prints the
result; ``serve`` runs the HTTP API.
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from similar_products import __version__
from similar_products.errors import UpstreamNotFound, UpstreamUnavailable
from similar_products.models.config import ConfigManager, ServiceConfig
from similar_products.models.data_models import AggregatedResult
from similar_products.pipeline.orchestrator import ServiceOrchestrator
from similar_products.pipeline.output import JSONOutputFormatter


console = Console()

EXIT_NOT_FOUND = 2
EXIT_UNAVAILABLE = 3


def _load_config(config: Path, overrides: dict) -> ServiceConfig:
    return ConfigManager(config).load_config(overrides)


config_option = click.option(
    "--config",
    "-c",
    type=click.Path(path_type=Path),
    default="config/config.yaml",
    show_default=True,
    help="Path to configuration YAML file (skipped if missing)",
)
log_level_option = click.option(
    "--log-level",
    "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (overrides config)",
)


@click.group()
@click.version_option(version=__version__, prog_name="similar-products")
def cli() -> None:
    """
    Similar Products - aggregate details of products similar to a given one.

    Examples:

        # Look up product 1 against the configured catalog
        $ similar-products lookup 1

        # Save the result as JSON
        $ similar-products lookup 1 --output out/similar_1.json

        # Run the HTTP API on port 5000
        $ similar-products serve
    """


@cli.command()
@click.argument("product_id")
@config_option
@click.option(
    "--base-url",
    "-u",
    help="Catalog base URL (overrides config)",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Write the result as JSON to this file",
)
@log_level_option
def lookup(
    product_id: str,
    config: Path,
    base_url: Optional[str],
    output: Optional[Path],
    log_level: Optional[str],
) -> None:
    """Look up the products similar to PRODUCT_ID."""
    try:
        service_config = _load_config(config, {
            "upstream_base_url": base_url,
            "log_level": log_level.upper() if log_level else None,
        })

        result = asyncio.run(_run_lookup(service_config, product_id))

        if output:
            JSONOutputFormatter().save(result, str(output))

        _display_result(result, output)
        sys.exit(0)

    except UpstreamNotFound as e:
        console.print(f"[yellow]Not found:[/yellow] {e}")
        sys.exit(EXIT_NOT_FOUND)
    except (UpstreamUnavailable, asyncio.TimeoutError) as e:
        console.print(f"[red]Unavailable:[/red] {str(e) or 'request timed out'}")
        sys.exit(EXIT_UNAVAILABLE)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)  # Standard exit code for SIGINT
    except Exception as e:
        console.print(f"\n[red]Error:[/red] {e}", style="bold red")
        sys.exit(1)


@cli.command()
@config_option
@click.option("--host", help="Bind address (overrides config)")
@click.option("--port", "-p", type=int, help="Port (overrides config)")
@log_level_option
def serve(config: Path, host: Optional[str], port: Optional[int], log_level: Optional[str]) -> None:
    """Run the HTTP API."""
    import uvicorn

    from similar_products.api import create_app

    service_config = _load_config(config, {
        "server_host": host,
        "server_port": port,
        "log_level": log_level.upper() if log_level else None,
    })
    console.print(
        f"[cyan]Serving on {service_config.server_host}:{service_config.server_port}, "
        f"catalog at {service_config.upstream_base_url}[/cyan]"
    )
    uvicorn.run(
        create_app(service_config),
        host=service_config.server_host,
        port=service_config.server_port,
        log_level=service_config.log_level.lower(),
    )


async def _run_lookup(config: ServiceConfig, product_id: str) -> AggregatedResult:
    async with ServiceOrchestrator(config) as orchestrator:
        return await orchestrator.get_similar_products(product_id)


def _display_result(result: AggregatedResult, output_path: Optional[Path]) -> None:
    """Display the lookup result."""
    table = Table(title=f"Products similar to {result.root_id}")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Price", justify="right", style="magenta")
    table.add_column("Available", justify="center")

    for product in result.products:
        table.add_row(
            product.id,
            product.name,
            f"{product.price:.2f}",
            "[green]yes[/green]" if product.availability else "[red]no[/red]",
        )

    console.print(table)
    summary = f"Resolved {len(result)} of {result.requested} similar products"
    if result.missing:
        summary += f" [yellow]({result.missing} unavailable)[/yellow]"
    console.print(summary)

    if output_path:
        console.print(f"[bold]Output saved to:[/bold] {output_path}")


if __name__ == "__main__":
    cli()
