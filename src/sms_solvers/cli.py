"""
Command-line interface for the SMS solvers system.

This module provides the main CLI entry point with commands for:
- presets: Show the polling presets
- dial-code: Look up dial codes for countries
- config: Configuration management
- simulate: Run a full verification flow against the simulated backend

The configuration file is taken from --config, or from the
SMS_SOLVERS_CONFIG environment variable (a .env file is honoured).
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from . import __version__
from .audit_logger import AuditLogger
from .config import (
    SERVICE_PRESETS,
    LoggingConfig,
    ProviderConfig,
    RetryConfig,
    ServiceConfig,
    SystemConfig,
)
from .dial_codes import DialCodeRegistry
from .exceptions import ConfigValidationError, SmsSolversError, ValidationError
from .orchestrator import CancellationToken, SmsSolverService
from .providers import RetryableProvider, SimulatedProvider

CONFIG_ENV_VAR = "SMS_SOLVERS_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".sms_solvers" / "config.json"


def resolve_config_path(cli_value: Optional[str]) -> Path:
    """Pick the config path: CLI flag, then environment, then the default."""
    if cli_value:
        return Path(cli_value)
    env_value = os.getenv(CONFIG_ENV_VAR, "").strip()
    if env_value:
        return Path(env_value)
    return DEFAULT_CONFIG_PATH


def create_default_config(simulation_mode: bool = False) -> SystemConfig:
    """
    Create a default system configuration.

    Args:
        simulation_mode: Use the in-process simulated backend

    Returns:
        SystemConfig with default settings
    """
    return SystemConfig(
        service=ServiceConfig.balanced(),
        retry=RetryConfig(),
        provider=None,
        logging=LoggingConfig(level="info", output_format="text"),
        simulation_mode=simulation_mode,
    )


def load_config_from_file(config_path: Path) -> Optional[SystemConfig]:
    """
    Load configuration from a JSON file.

    Args:
        config_path: Path to the configuration file

    Returns:
        SystemConfig if successful, None otherwise
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        service_data = data.get("service", {})
        service = ServiceConfig(
            timeout_seconds=float(service_data.get("timeout_seconds", 120.0)),
            poll_interval_seconds=float(service_data.get("poll_interval_seconds", 3.0)),
        )

        retry_data = data.get("retry", {})
        retry = RetryConfig(
            min_delay_seconds=float(retry_data.get("min_delay_seconds", 1.0)),
            max_delay_seconds=float(retry_data.get("max_delay_seconds", 30.0)),
            factor=float(retry_data.get("factor", 2.0)),
            max_retries=int(retry_data.get("max_retries", 3)),
        )

        provider = None
        provider_data = data.get("provider")
        if provider_data:
            provider = ProviderConfig(
                base_url=provider_data["base_url"],
                api_key=provider_data["api_key"],
                timeout_seconds=float(provider_data.get("timeout_seconds", 30.0)),
                api_key_param=provider_data.get("api_key_param", "api_key"),
                blacklisted_dial_codes=tuple(
                    provider_data.get("blacklisted_dial_codes", [])
                ),
            )

        logging_data = data.get("logging", {})
        logging_config = LoggingConfig(
            level=logging_data.get("level", "info"),
            output_format=logging_data.get("output_format", "text"),
        )

        return SystemConfig(
            service=service,
            retry=retry,
            provider=provider,
            logging=logging_config,
            simulation_mode=bool(data.get("simulation_mode", False)),
        )

    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return None
    except FileNotFoundError:
        return None


def save_config_to_file(config: SystemConfig, config_path: Path) -> bool:
    """
    Save configuration to a JSON file.

    Args:
        config: SystemConfig to save
        config_path: Path to save the configuration

    Returns:
        True if successful, False otherwise
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "service": {
                "timeout_seconds": config.service.timeout_seconds,
                "poll_interval_seconds": config.service.poll_interval_seconds,
            },
            "retry": {
                "min_delay_seconds": config.retry.min_delay_seconds,
                "max_delay_seconds": config.retry.max_delay_seconds,
                "factor": config.retry.factor,
                "max_retries": config.retry.max_retries,
            },
            "provider": {
                "base_url": config.provider.base_url,
                "api_key": config.provider.api_key,
                "timeout_seconds": config.provider.timeout_seconds,
                "api_key_param": config.provider.api_key_param,
                "blacklisted_dial_codes": list(config.provider.blacklisted_dial_codes),
            } if config.provider else None,
            "logging": {
                "level": config.logging.level,
                "output_format": config.logging.output_format,
            },
            "simulation_mode": config.simulation_mode,
        }

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        return True

    except (OSError, TypeError) as e:
        print(f"Error saving config: {e}", file=sys.stderr)
        return False


def load_dial_codes(path: Optional[str]) -> Optional[DialCodeRegistry]:
    """Load a dial-code table from a JSON file, or the built-in table if path is None."""
    if not path:
        return DialCodeRegistry()
    try:
        return DialCodeRegistry.from_json_file(Path(path))
    except (OSError, json.JSONDecodeError, KeyError, TypeError, ValidationError) as e:
        print(f"Error loading dial codes from {path}: {e}", file=sys.stderr)
        return None


def cmd_presets(args: argparse.Namespace) -> int:
    """Handle the 'presets' command."""
    for name, factory in SERVICE_PRESETS.items():
        preset = factory()
        print(
            f"{name:<10} timeout={preset.timeout_seconds:g}s "
            f"poll_interval={preset.poll_interval_seconds:g}s"
        )
    return 0


def cmd_dial_code(args: argparse.Namespace) -> int:
    """Handle the 'dial-code' command."""
    registry = load_dial_codes(args.dial_codes)
    if registry is None:
        return 1

    exit_code = 0
    for country in args.countries:
        dial_code = registry.dial_code_for(country)
        if dial_code is None:
            print(f"{country.upper()}: unknown")
            exit_code = 1
        else:
            print(f"{country.upper()}: +{dial_code}")
    return exit_code


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = resolve_config_path(args.config)

    if args.action == "show":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"No configuration found at: {config_path}")
            print("Use 'config init' to create a default configuration.")
            return 1

        print(f"Configuration from: {config_path}")
        print(f"  Timeout: {config.service.timeout_seconds:g}s")
        print(f"  Poll interval: {config.service.poll_interval_seconds:g}s")
        print(
            f"  Retry: max_retries={config.retry.max_retries} "
            f"delay={config.retry.min_delay_seconds:g}s..{config.retry.max_delay_seconds:g}s "
            f"factor={config.retry.factor:g}"
        )
        if config.provider:
            print(f"  Provider: {config.provider.base_url}")
            print(f"  API key: {AuditLogger.MASK_VALUE}")
        else:
            print("  Provider: (none)")
        print(f"  Simulation mode: {config.simulation_mode}")
        print(f"  Log level: {config.logging.level}")
        return 0

    elif args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return 1

        config = create_default_config(simulation_mode=True)
        if save_config_to_file(config, config_path):
            print(f"Configuration created at: {config_path}")
            return 0
        return 1

    elif args.action == "validate":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"Error: Could not load config from {config_path}", file=sys.stderr)
            return 1

        try:
            config.validate()
        except ConfigValidationError as e:
            print(f"Invalid configuration ({e.field}): {e.message}", file=sys.stderr)
            return 1

        print(f"Configuration at {config_path} is valid.")
        return 0

    return 1


async def run_simulation(
    country: str,
    service_name: str,
    config: SystemConfig,
    registry: DialCodeRegistry,
    polls_before_code: Optional[int] = 2,
    cancel_after: Optional[float] = None,
    as_json: bool = False,
) -> int:
    """
    Run acquire, wait and finish against the simulated backend.

    Returns:
        Exit code (0 when a code was received)
    """
    logger = AuditLogger.from_config(config.logging)
    token = CancellationToken()
    if cancel_after is not None:
        asyncio.get_running_loop().call_later(cancel_after, token.cancel)

    try:
        backend = SimulatedProvider(
            dial_codes=registry,
            polls_before_code=polls_before_code,
            blacklisted_dial_codes=(
                config.provider.blacklisted_dial_codes if config.provider else ()
            ),
        )
        provider = RetryableProvider(backend, config.retry, logger=logger)
        service = SmsSolverService(provider, config.service, registry, logger)
        task = await service.get_number(country, service_name)
        code, stats = await service.wait_for_sms_code_with_stats(task.task_id, token)
        await service.finish(task.task_id)
    except SmsSolversError as e:
        if as_json:
            print(json.dumps(e.to_dict(), ensure_ascii=False, default=str))
        else:
            print(f"Error [{e.code}]: {e.message}", file=sys.stderr)
        return 1

    if as_json:
        print(json.dumps(
            {
                "task_id": task.task_id.value,
                "country": task.country,
                "dial_code": task.dial_code.value,
                "number": task.number.value,
                "full_number": task.full_number.with_plus_prefix(),
                "code": code.value,
                "poll_count": stats.poll_count,
                "elapsed_seconds": stats.elapsed_seconds,
            },
            ensure_ascii=False,
        ))
    else:
        print(f"Number: {task.full_number.with_plus_prefix()} ({task.country})")
        print(f"Code: {code}")
        print(f"Polls: {stats.poll_count} in {stats.elapsed_seconds:.2f}s")
    return 0


def cmd_simulate(args: argparse.Namespace) -> int:
    """Handle the 'simulate' command."""
    config = None
    if args.config or os.getenv(CONFIG_ENV_VAR):
        config_path = resolve_config_path(args.config)
        config = load_config_from_file(config_path)
        if config is None:
            print(f"Error: Could not load config from {config_path}", file=sys.stderr)
            return 1

    if config is None:
        config = create_default_config(simulation_mode=True)

    service_config = config.service
    try:
        if args.preset:
            service_config = ServiceConfig.preset(args.preset)
        if args.poll_interval is not None:
            service_config = service_config.with_poll_interval(args.poll_interval)
        config = SystemConfig(
            service=service_config,
            retry=config.retry,
            provider=config.provider,
            logging=config.logging,
            simulation_mode=True,
        )
        config.validate()
    except ConfigValidationError as e:
        print(f"Invalid configuration ({e.field}): {e.message}", file=sys.stderr)
        return 1

    registry = load_dial_codes(args.dial_codes)
    if registry is None:
        return 1

    if args.dry_run:
        dial_code = registry.dial_code_for(args.country)
        print(f"Country: {args.country.upper()}")
        print(f"Dial code: {'+' + dial_code.value if dial_code else 'unknown'}")
        print(f"Service: {args.service}")
        print(
            f"Timeout: {service_config.timeout_seconds:g}s, "
            f"poll interval: {service_config.poll_interval_seconds:g}s"
        )
        return 0 if dial_code else 1

    polls_before_code = args.polls_before_code
    if polls_before_code is not None and polls_before_code < 0:
        polls_before_code = None

    return asyncio.run(run_simulation(
        country=args.country,
        service_name=args.service,
        config=config,
        registry=registry,
        polls_before_code=polls_before_code,
        cancel_after=args.cancel_after,
        as_json=args.json,
    ))


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="sms-solvers",
        description="Disposable phone number verification with resilient polling",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'presets' command
    presets_parser = subparsers.add_parser(
        "presets",
        help="Show the polling presets",
    )
    presets_parser.set_defaults(func=cmd_presets)

    # 'dial-code' command
    dial_code_parser = subparsers.add_parser(
        "dial-code",
        help="Look up dial codes for ISO alpha-2 country codes",
    )
    dial_code_parser.add_argument(
        "countries",
        nargs="+",
        help="Country codes (e.g., UA US)",
    )
    dial_code_parser.add_argument(
        "--dial-codes",
        help="Path to a JSON dial-code table",
    )
    dial_code_parser.set_defaults(func=cmd_dial_code)

    # 'config' command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
    )
    config_parser.add_argument(
        "action",
        choices=["show", "init", "validate"],
        help="Configuration action",
    )
    config_parser.add_argument(
        "--config", "-c",
        help=f"Path to configuration file (default: ${CONFIG_ENV_VAR} or {DEFAULT_CONFIG_PATH})",
    )
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.set_defaults(func=cmd_config)

    # 'simulate' command
    simulate_parser = subparsers.add_parser(
        "simulate",
        help="Run a verification against the simulated backend",
    )
    simulate_parser.add_argument(
        "--country",
        required=True,
        help="ISO alpha-2 country code",
    )
    simulate_parser.add_argument(
        "--service",
        required=True,
        help="Service identifier (e.g., tg)",
    )
    simulate_parser.add_argument(
        "--preset",
        choices=sorted(SERVICE_PRESETS),
        help="Polling preset (default: from config, else balanced)",
    )
    simulate_parser.add_argument(
        "--poll-interval",
        type=float,
        help="Override the poll interval in seconds",
    )
    simulate_parser.add_argument(
        "--polls-before-code",
        type=int,
        default=2,
        help="Polls answered with 'not yet' before the code arrives; negative means never",
    )
    simulate_parser.add_argument(
        "--cancel-after",
        type=float,
        help="Cancel the wait after this many seconds",
    )
    simulate_parser.add_argument(
        "--dial-codes",
        help="Path to a JSON dial-code table",
    )
    simulate_parser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
    )
    simulate_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON",
    )
    simulate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Resolve the request and print the plan without renting a number",
    )
    simulate_parser.set_defaults(func=cmd_simulate)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    load_dotenv()

    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
