"""
CIRISUpdater CLI entry point.
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from ciris_updater.config.settings import CIRISUpdaterConfig
from ciris_updater.logging_config import setup_logging as setup_full_logging


def setup_logging(config: CIRISUpdaterConfig, verbose: bool = False) -> None:
    """Setup logging from the configuration, falling back to console only."""
    console_level = "DEBUG" if verbose else config.logging.console_level

    log_dir = config.logging.log_dir
    if log_dir and not os.access(Path(log_dir).parent, os.W_OK):
        log_dir = str(Path.home() / ".local" / "log" / "ciris-updater")

    try:
        setup_full_logging(
            log_dir=log_dir,
            console_level=console_level,
            file_level=config.logging.file_level,
            use_json=config.logging.use_json,
        )
    except PermissionError:
        # Fall back to basic logging if file logging fails
        logging.basicConfig(
            level=getattr(logging, console_level),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            handlers=[logging.StreamHandler(sys.stdout)],
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="CIRISUpdater - Keeps running containers on their latest images",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the updater daemon
  ciris-updater --config /etc/ciris-updater/config.yml

  # Check once which containers are outdated without touching them
  ciris-updater --run-once --monitor-only

  # Update two containers one at a time and remove their old images
  ciris-updater --run-once --rolling-restart --cleanup web worker
        """,
    )

    parser.add_argument("names", nargs="*", help="Only update these containers")
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default="/etc/ciris-updater/config.yml",
        help="Path to configuration file (default: /etc/ciris-updater/config.yml)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument(
        "--generate-config",
        action="store_true",
        help="Generate default configuration file and exit",
    )
    parser.add_argument(
        "--validate-config", action="store_true", help="Validate configuration file and exit"
    )
    parser.add_argument("--run-once", action="store_true", help="Run one update and exit")
    parser.add_argument("--interval", type=int, help="Seconds between update runs")
    parser.add_argument("--stop-timeout", type=float, help="Seconds to wait for a container to stop")
    parser.add_argument(
        "--monitor-only", action="store_true", default=None, help="Only report outdated containers"
    )
    parser.add_argument(
        "--no-restart",
        action="store_true",
        default=None,
        help="Stop outdated containers without restarting them",
    )
    parser.add_argument(
        "--rolling-restart",
        action="store_true",
        default=None,
        help="Restart containers one at a time",
    )
    parser.add_argument(
        "--cleanup", action="store_true", default=None, help="Remove old images after updating"
    )
    parser.add_argument(
        "--enable-lifecycle-hooks",
        action="store_true",
        default=None,
        help="Run lifecycle hook commands from container labels",
    )
    parser.add_argument(
        "--label-enable",
        action="store_true",
        default=None,
        help="Only update containers labelled ciris.updater.enable=true",
    )
    parser.add_argument("--scope", type=str, help="Only update containers in this scope")

    return parser


def apply_arguments(config: CIRISUpdaterConfig, args: argparse.Namespace) -> None:
    """Command line flags take precedence over the file and environment."""
    if args.names:
        config.selection.names = list(args.names)
    if args.label_enable:
        config.selection.label_enable = True
    if args.scope:
        config.selection.scope = args.scope
    if args.interval is not None:
        config.schedule.interval = args.interval
    if args.run_once:
        config.schedule.run_once = True
    if args.stop_timeout is not None:
        config.update.stop_timeout = args.stop_timeout
    if args.monitor_only:
        config.update.monitor_only = True
    if args.no_restart:
        config.update.no_restart = True
    if args.rolling_restart:
        config.update.rolling_restart = True
    if args.cleanup:
        config.update.cleanup = True
    if args.enable_lifecycle_hooks:
        config.update.lifecycle_hooks = True


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    if args.generate_config:
        CIRISUpdaterConfig().save(args.config)
        print(f"Generated default configuration at: {args.config}")
        return 0

    try:
        config = CIRISUpdaterConfig.from_file(args.config)
        apply_arguments(config, args)
    except Exception as e:
        print(f"Configuration invalid: {e}", file=sys.stderr)
        return 1

    problems = config.validate_settings()
    if args.validate_config or problems:
        for problem in problems:
            print(f"Configuration invalid: {problem}", file=sys.stderr)
        if not problems:
            print(f"Configuration valid: {args.config}")
        return 1 if problems else 0

    setup_logging(config, args.verbose)
    logger = logging.getLogger(__name__)

    # Imported late so --help and config handling work without a Docker SDK install
    import docker

    from ciris_updater.daemon import UpdaterDaemon
    from ciris_updater.docker_client import DockerRuntimeClient

    try:
        docker_client = (
            docker.DockerClient(base_url=config.docker.host)
            if config.docker.host
            else docker.from_env()
        )
        client = DockerRuntimeClient(
            docker_client,
            pull_images=config.docker.pull_images,
            include_stopped=config.docker.include_stopped,
            include_restarting=config.docker.include_restarting,
        )
    except Exception as e:
        logger.error(f"Failed to connect to Docker: {e}")
        return 1

    daemon = UpdaterDaemon(config, client)
    try:
        if config.schedule.run_once:
            report = daemon.run_once()
            print(report.summary())
            return 0
        asyncio.run(daemon.run())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        # Print to stderr for systemd journal
        print(f"Error running CIRISUpdater: {e}", file=sys.stderr)
        return 1
    finally:
        client.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
