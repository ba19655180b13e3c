"""CLI entry point."""

from __future__ import annotations

import asyncio
import sys

import rich_click as click

from datastar_aiohttp.core.logging_config import configure_logging
from datastar_aiohttp.frontends.cli.encode import encode

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.USE_MARKDOWN = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = "Try running '--help' for more information."
click.rich_click.ERRORS_EPILOGUE = ""
click.rich_click.MAX_WIDTH = 100


@click.group()
@click.version_option(package_name="datastar-aiohttp")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level (default: DATASTAR_LOG_LEVEL or INFO)",
)
@click.option("--log-json", is_flag=True, help="Emit logs as JSON")
def cli(log_level: str | None, log_json: bool) -> None:
    """datastar-aiohttp - Datastar server-sent events for aiohttp.

    **Commands:**

        datastar-aiohttp testserver    Run the SDK conformance test server

        datastar-aiohttp encode        Render Datastar SSE frames to stdout
    """
    configure_logging(level=log_level, format="json" if log_json else None)


@cli.command()
@click.option("--host", "-h", default=None, help="Host to bind (default: 127.0.0.1)")
@click.option("--port", "-p", type=int, default=None, help="Port (default: TEST_PORT or 7331)")
@click.option(
    "--retry-duration",
    "-r",
    type=int,
    default=None,
    help="retry: value sent when a stream opens, in ms",
)
@click.option("--config", "-c", "config_file", default=None, help="YAML config file")
def testserver(
    host: str | None,
    port: int | None,
    retry_duration: int | None,
    config_file: str | None,
) -> None:
    """Run the Datastar SDK conformance test server.

    Accepts `POST /test` with an `events` array and streams the
    corresponding Datastar events back.

    **Examples:**

        datastar-aiohttp testserver

        datastar-aiohttp testserver --port 8080

        TEST_PORT=8080 datastar-aiohttp testserver
    """
    from datastar_aiohttp.compose import create_test_server

    try:
        asyncio.run(create_test_server(host, port, retry_duration, config_file))
    except KeyboardInterrupt:
        pass
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


cli.add_command(encode)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
