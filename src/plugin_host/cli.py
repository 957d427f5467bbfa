"""
Command line entry point for the plugin host.

Examples:
    # Load and validate every configured plugin once
    plugin-host check config/plugins.yaml

    # Fire one event and print the per-plugin results as JSON
    plugin-host dispatch config/plugins.yaml sceneCreated --data '{"id": "abc"}'

    # Keep running and reload plugins whenever their sources change
    plugin-host run config/plugins.yaml --log-level DEBUG
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from .framework.configuration import load_configuration_from_file
from .framework.plugin_host import PluginHost
from .infrastructure.exceptions import ConfigurationError
from .infrastructure.observability.logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="plugin-host",
        description="Load, validate, watch and dispatch events to plugins",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override the configured log level"
    )
    parser.add_argument(
        "--log-format",
        choices=["pretty", "json"],
        default=None,
        help="Override the configured log format"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Run one reinitialization cycle and report the result")
    check.add_argument("config", help="Path to the YAML configuration file")

    dispatch = subparsers.add_parser("dispatch", help="Run one cycle, then dispatch one event")
    dispatch.add_argument("config", help="Path to the YAML configuration file")
    dispatch.add_argument("event", help="Name of the event to dispatch")
    dispatch.add_argument("--data", default=None, help="Event payload as JSON")

    run = subparsers.add_parser("run", help="Run the host and reload plugins on source changes")
    run.add_argument("config", help="Path to the YAML configuration file")

    return parser


async def _check(host: PluginHost) -> int:
    outcome = await host.reinitialize("check")
    if not outcome.committed:
        print(f"FAILED: {outcome.error.message}", file=sys.stderr)
        return 1

    for name in outcome.plugin_names:
        plugin = host.get_plugin(name)
        version = f" v{plugin.version}" if plugin.version else ""
        print(f"{name}{version}  {plugin.source_path}")
    return 0


async def _dispatch(host: PluginHost, event_name: str, data: Optional[str]) -> int:
    payload = json.loads(data) if data else None
    outcome = await host.reinitialize("dispatch")
    if not outcome.committed:
        print(f"FAILED: {outcome.error.message}", file=sys.stderr)
        return 1

    results = await host.dispatch(event_name, payload)
    print(json.dumps([
        {
            "plugin": result.plugin_name,
            "status": result.status.value,
            "output": result.output,
            "error": result.error.message if result.error else None,
            "duration_ms": result.duration_ms
        }
        for result in results
    ], indent=2, default=str))
    return 0 if all(result.succeeded for result in results) else 2


async def _run(host: PluginHost) -> int:
    await host.start()
    try:
        await asyncio.Event().wait()
    finally:
        await host.stop()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        configuration = load_configuration_from_file(args.config)
    except ConfigurationError as e:
        detailed = getattr(e, "get_detailed_message", None)
        print(detailed() if detailed else e.message, file=sys.stderr)
        return 1

    logging_config = configuration.logging_config
    setup_logging(
        level=args.log_level or logging_config.level,
        log_format=args.log_format or logging_config.format,
        colors=logging_config.colors and sys.stderr.isatty(),
        stream=sys.stderr
    )

    if args.command == "run":
        host = PluginHost.from_configuration(configuration)
        try:
            return asyncio.run(_run(host))
        except KeyboardInterrupt:
            return 0

    # One-shot commands never watch
    configuration.watch_config.enabled = False
    host = PluginHost.from_configuration(configuration)

    if args.command == "check":
        return asyncio.run(_check(host))
    if args.command == "dispatch":
        try:
            return asyncio.run(_dispatch(host, args.event, args.data))
        except json.JSONDecodeError as e:
            print(f"Invalid --data JSON: {e}", file=sys.stderr)
            return 1

    return 1


if __name__ == "__main__":
    sys.exit(main())
