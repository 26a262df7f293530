"""
chiralnat/cli.py

Command line entry point.

Usage:
    chiral-nat run [--report-dir DIR] [--min-peers N] [-v]
    chiral-nat bootstrap-nodes [--json]
"""

import sys
import json
import logging

import click
import trio

from .config import HarnessConfig, get_bootstrap_nodes
from .docker import CommandRunner, DockerCompose
from .errors import CommandUnsuccessful, HarnessError
from .harness.orchestrator import NatTestRun, RunReport
from .harness.report import write_report

logger = logging.getLogger("chiralnat.cli")

LOG_FORMAT = '%(asctime)s [%(name)s] %(levelname)s: %(message)s'


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )


def apply_overrides(config: HarnessConfig, **overrides) -> HarnessConfig:
    """Copy non-None CLI values onto the config."""
    stabilization = config.stabilization
    for key, value in overrides.items():
        if value is None:
            continue
        if key == "stabilize_seconds":
            stabilization.timeout = value
        elif key == "poll_interval":
            stabilization.poll_interval = value
        elif key == "min_peers":
            stabilization.min_connected_peers = value
        else:
            setattr(config, key, value)
    return config


def print_summary(report: RunReport, compose: DockerCompose, config: HarnessConfig) -> None:
    command = compose.compose_command_display
    click.echo("")
    click.echo("===============================================")
    click.echo("Test Summary")
    click.echo("===============================================")
    click.echo(f"Bootstrap peer ID: {report.peer_id} (attempt {report.extraction_attempt})")
    click.echo(f"Bootstrap config verified: {'yes' if report.config_verified else 'no'}")
    for name, status in report.statuses.items():
        click.echo(f"  {name}: {status.describe()}")
    for marker, count in report.marker_counts.items():
        click.echo(f"  {marker} mentions: {count}")
    click.echo("")
    click.echo("Containers are still running. View logs with:")
    click.echo(f"  docker logs -f {config.activity_container}")
    click.echo(f"  docker logs -f {config.bootstrap_container}")
    click.echo("")
    click.echo("Stop all containers with:")
    click.echo(f"  {command} down")


@click.group()
def main():
    """Docker NAT traversal test harness for Chiral Network."""


@main.command()
@click.option('--compose-file', default=None, help='Compose file with the BOOTSTRAP_PEER_ID placeholder')
@click.option('--dockerfile', default=None, help='Dockerfile for the test image')
@click.option('--image', default=None, help='Tag for the test image')
@click.option('--attempts', 'extraction_attempts', type=int, default=None,
              help='Peer ID extraction attempts')
@click.option('--delay', 'extraction_delay', type=float, default=None,
              help='Seconds between extraction attempts')
@click.option('--stabilize-seconds', type=float, default=None,
              help='Stabilization wait (or polling timeout) in seconds')
@click.option('--poll-interval', type=float, default=None,
              help='Seconds between readiness polls')
@click.option('--min-peers', type=click.IntRange(min=0), default=None,
              help='Poll until every peer has this many connections instead of a fixed wait')
@click.option('--report-dir', default=None, help='Write a Markdown report into this directory')
@click.option('--compose-command', default=None,
              help="Compose invocation, e.g. 'docker compose' (detected when omitted)")
@click.option('--skip-prerequisites', is_flag=True, help='Skip the docker availability check')
@click.option('-v', '--verbose', is_flag=True, help='Debug logging')
def run(skip_prerequisites: bool, verbose: bool, **overrides):
    """Build, start and verify the NAT test environment."""
    configure_logging(verbose)
    config = apply_overrides(HarnessConfig.from_env(), **overrides)
    compose = DockerCompose.from_command_string(
        CommandRunner(), config.compose_file, config.compose_command
    )
    harness = NatTestRun(config, compose, check_prerequisites=not skip_prerequisites)

    try:
        report = trio.run(harness.run)
    except KeyboardInterrupt:
        logger.warning(f"Test interrupted. Run: {compose.compose_command_display} down")
        sys.exit(1)
    except CommandUnsuccessful as e:
        logger.error(str(e))
        if e.stderr.strip():
            logger.error(e.stderr.strip().splitlines()[-1])
        sys.exit(1)
    except HarnessError as e:
        logger.error(str(e))
        sys.exit(1)

    if config.report_dir:
        write_report(report, config, config.report_dir)

    print_summary(report, compose, config)


@main.command('bootstrap-nodes')
@click.option('--json', 'as_json', is_flag=True, help='Print as a JSON array')
def bootstrap_nodes(as_json: bool):
    """Print the bootstrap node multiaddresses."""
    nodes = get_bootstrap_nodes()
    if as_json:
        click.echo(json.dumps(nodes))
        return
    for node in nodes:
        click.echo(node)


if __name__ == "__main__":
    main()
