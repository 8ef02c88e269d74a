"""llmcompat CLI entrypoint."""

from __future__ import annotations

import sys

import click

from llmcompat import __version__


@click.group()
@click.version_option(version=__version__, prog_name="llmcompat")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option("--trace", is_flag=True, help="Print OpenTelemetry spans to stderr (requires llmcompat[otel]).")
@click.option(
    "--otlp-endpoint",
    envvar="LLMCOMPAT_OTLP_ENDPOINT",
    default=None,
    help="Export OpenTelemetry spans to this OTLP/gRPC endpoint (requires llmcompat[otel]).",
)
def main(verbose: bool, trace: bool, otlp_endpoint: str | None) -> None:
    """llmcompat: convert LLM API payloads between wire formats."""
    if verbose:
        from llmcompat.cli_commands._output import configure_logging

        configure_logging()
    if trace or otlp_endpoint:
        from llmcompat.cli_commands._output import fail
        from llmcompat.utils.telemetry import configure_telemetry

        try:
            configure_telemetry(console_stream=sys.stderr if trace else None, otlp_endpoint=otlp_endpoint)
        except ImportError as exc:
            fail("Telemetry error", exc)


# Register subcommands
from llmcompat.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
