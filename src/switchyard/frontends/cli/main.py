"""CLI entry point."""

from __future__ import annotations

import asyncio
import sys
from typing import Any


def main() -> None:
    """Main entry point for the CLI."""
    import importlib.util

    if importlib.util.find_spec("rich_click") is None:
        print("CLI dependencies not installed. Run: pip install switchyard[cli]")
        sys.exit(1)

    build_cli()()


def build_cli() -> Any:
    """CLI definition."""
    import rich_click as click

    # Configure rich-click styling
    click.rich_click.USE_RICH_MARKUP = True
    click.rich_click.USE_MARKDOWN = True
    click.rich_click.SHOW_ARGUMENTS = True
    click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
    click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
    click.rich_click.ERRORS_SUGGESTION = "Try running '--help' for more information."
    click.rich_click.ERRORS_EPILOGUE = ""
    click.rich_click.MAX_WIDTH = 100

    @click.group()
    @click.version_option(package_name="switchyard")
    def cli():
        """Switchyard - reverse proxy for AI provider APIs.

        Routes requests by path prefix:

            /openrouter/*    OpenRouter (https://openrouter.ai/api/v1)

            /modelscope/*    ModelScope (https://api-inference.modelscope.cn/v1)

            /gemini/*        Google Gemini (https://generativelanguage.googleapis.com)
        """
        pass

    @cli.command()
    @click.option("--host", default=None, help="Host to bind to (default: 127.0.0.1)")
    @click.option("--port", "-p", type=int, default=None, help="Port to bind to (default: 8787)")
    @click.option("--config", "-c", "config_file", default=None, help="YAML config file")
    @click.option("--debug-dir", default=None, help="Save per-request debug metadata here")
    @click.option(
        "--log-level",
        default=None,
        type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
        help="Log level (default: SWITCHYARD_LOG_LEVEL or INFO)",
    )
    @click.option(
        "--log-format",
        default=None,
        type=click.Choice(["text", "json"]),
        help="Log output format",
    )
    def serve(
        host: str | None,
        port: int | None,
        config_file: str | None,
        debug_dir: str | None,
        log_level: str | None,
        log_format: str | None,
    ):
        """Run the gateway.

        **Examples:**

            switchyard serve

            switchyard serve --port 9000 --log-level DEBUG

            switchyard serve --config switchyard.yaml
        """
        from switchyard.compose import create_gateway
        from switchyard.logging_config import configure_logging

        try:
            configure_logging(level=log_level, format=log_format)  # type: ignore[arg-type]
        except ValueError as e:
            raise click.BadParameter(str(e)) from e

        try:
            asyncio.run(
                create_gateway(
                    host=host,
                    port=port,
                    debug_dir=debug_dir,
                    config_file=config_file,
                )
            )
        except KeyboardInterrupt:
            pass
        except (ValueError, FileNotFoundError) as e:
            print(f"Error: {e}")
            sys.exit(1)

    @cli.command()
    @click.option("--config", "-c", "config_file", default=None, help="YAML config file")
    def routes(config_file: str | None):
        """Show the route table in match order."""
        from rich.console import Console
        from rich.table import Table

        from switchyard.compose import load_gateway_config
        from switchyard.gateway.server import GatewayServer

        try:
            config = asyncio.run(load_gateway_config(config_file=config_file))
        except (ValueError, FileNotFoundError) as e:
            print(f"Error: {e}")
            sys.exit(1)

        table = Table(title="Routes")
        table.add_column("Prefix", style="cyan")
        table.add_column("Provider")
        table.add_column("Upstream", style="green")
        for route in GatewayServer(config=config).router.routes:
            table.add_row(route.prefix, route.adapter.name, route.adapter.base_url)
        Console().print(table)

    return cli


if __name__ == "__main__":
    main()
