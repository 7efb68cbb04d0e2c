"""Command-line interface for the Stack Overflow MCP server."""

import asyncio
import json
import logging
import logging.config
import sys
from pathlib import Path
from typing import List, Optional

import typer
from typing_extensions import Annotated

from stackoverflow_mcp.config import Config
from stackoverflow_mcp.errors import StackOverflowMCPError
from stackoverflow_mcp.formatting import ResponseFormat, format_results
from stackoverflow_mcp.monitoring.metrics import PrometheusExporter
from stackoverflow_mcp.server import build_components, run_server
from stackoverflow_mcp.tools.schemas import list_tools

app = typer.Typer(help="Stack Overflow MCP server - search and gated writes for AI agents")

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yaml"


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Set up logging configuration.

    Console output goes to stderr: stdout carries the MCP message stream.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path of a rotating log file
    """
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "standard",
            "stream": "ext://sys.stderr",
        },
    }
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": "standard",
            "filename": log_file,
            "maxBytes": 10485760,  # 10 MB
            "backupCount": 5,
            "encoding": "utf8",
        }

    log_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
            },
        },
        "handlers": handlers,
        "loggers": {
            "": {
                "handlers": list(handlers),
                "level": log_level,
                "propagate": True
            },
            "asyncio": {
                "level": "WARNING",
            },
            "aiohttp": {
                "level": "WARNING",
            },
            "mcp": {
                "level": "WARNING",
            },
        }
    }

    logging.config.dictConfig(log_config)


def load_config(config_path: str, env_file: Optional[str], verbose: bool) -> Config:
    """Load and validate configuration, exiting on errors."""
    config = Config.from_files(config_path, env_file)
    setup_logging("DEBUG" if verbose else config.log_level, config.log_file)

    validation_errors = config.validate()
    if validation_errors:
        for error in validation_errors:
            logger.error(f"Configuration error: {error}")
        logger.critical("Invalid configuration, aborting")
        raise typer.Exit(code=1)

    return config


def start_metrics(config: Config) -> Optional[PrometheusExporter]:
    if not config.monitoring.enable_prometheus:
        return None
    exporter = PrometheusExporter(port=config.monitoring.prometheus_port)
    exporter.start_server()
    return exporter


@app.command()
def serve(
    config_path: Annotated[str, typer.Option("--config", "-c", help="Path to YAML config")] = DEFAULT_CONFIG_PATH,
    env_file: Annotated[Optional[str], typer.Option("--env-file", help="Path to .env file")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    """Run the MCP server on stdio."""
    config = load_config(config_path, env_file, verbose)
    exporter = start_metrics(config)

    try:
        asyncio.run(run_server(config, exporter))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


async def _run_search(
    config: Config,
    query: str,
    tags: Optional[List[str]],
    min_score: Optional[int],
    limit: int,
    include_comments: bool,
) -> list:
    components = build_components(config)
    try:
        return await components.collector.search_and_compose(
            query,
            tags=tags or None,
            min_score=min_score,
            limit=limit,
            include_comments=include_comments,
        )
    finally:
        await components.client.close()


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Free-text query")],
    tag: Annotated[Optional[List[str]], typer.Option("--tag", "-t", help="Required tag (repeatable)")] = None,
    min_score: Annotated[Optional[int], typer.Option("--min-score", help="Minimum question score")] = None,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum number of questions")] = 5,
    comments: Annotated[bool, typer.Option("--comments", help="Include comments")] = False,
    output: Annotated[ResponseFormat, typer.Option("--format", "-f", help="Output format")] = ResponseFormat.DOCUMENT,
    config_path: Annotated[str, typer.Option("--config", "-c", help="Path to YAML config")] = DEFAULT_CONFIG_PATH,
    env_file: Annotated[Optional[str], typer.Option("--env-file", help="Path to .env file")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    """Run one aggregated search and print the result."""
    config = load_config(config_path, env_file, verbose)

    try:
        results = asyncio.run(_run_search(config, query, tag, min_score, limit, comments))
    except StackOverflowMCPError as e:
        logger.error(f"Search failed: {type(e).__name__}: {e}")
        raise typer.Exit(code=1)

    typer.echo(format_results(results, output))


@app.command()
def tools() -> None:
    """Print the tool descriptors advertised to MCP hosts."""
    descriptors = [tool.model_dump(exclude_none=True) for tool in list_tools()]
    typer.echo(json.dumps(descriptors, indent=2))


def main() -> None:
    """Console-script entry point."""
    app()


if __name__ == "__main__":
    sys.exit(main())
