"""
chiralnat - Docker NAT traversal test harness for Chiral Network

Stands up a bootstrap node and several peers behind simulated NATs with
Docker Compose, wires the peers to the bootstrap node's identity and
reports connectivity and NAT traversal activity scraped from the logs.

Usage:
    import trio
    from chiralnat import HarnessConfig, NatTestRun, DockerCompose, CommandRunner

    config = HarnessConfig.from_env()
    compose = DockerCompose(CommandRunner(), config.compose_file)
    report = trio.run(NatTestRun(config, compose).run)

CLI Usage:
    chiral-nat run --report-dir reports/
    chiral-nat bootstrap-nodes --json
"""

from .config import (
    BOOTSTRAP_NODES,
    HarnessConfig,
    get_bootstrap_nodes,
    bootstrap_peer_ids,
)
from .errors import (
    HarnessError,
    CommandFailure,
    CommandUnsuccessful,
    ExtractionTimeout,
)
from .docker import CommandRunner, CommandResult, DockerCompose
from .harness import (
    PeerIdExtractor,
    ComposeTemplate,
    ConnectivityStatus,
    StabilizationPolicy,
    classify,
)
from .harness.orchestrator import NatTestRun, RunReport, Stage

__version__ = "0.1.0"
__all__ = [
    # Config
    "BOOTSTRAP_NODES",
    "HarnessConfig",
    "get_bootstrap_nodes",
    "bootstrap_peer_ids",
    # Errors
    "HarnessError",
    "CommandFailure",
    "CommandUnsuccessful",
    "ExtractionTimeout",
    # Docker
    "CommandRunner",
    "CommandResult",
    "DockerCompose",
    # Harness
    "PeerIdExtractor",
    "ComposeTemplate",
    "ConnectivityStatus",
    "StabilizationPolicy",
    "classify",
    "NatTestRun",
    "RunReport",
    "Stage",
]
