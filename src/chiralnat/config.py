"""
chiralnat/config.py

Configuration constants and data classes for the NAT test harness.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .harness.stabilization import StabilizationPolicy

logger = logging.getLogger("chiralnat.config")


# Bootstrap nodes shared by the desktop app and headless mode
# Format: /ip4/{ip}/tcp/{port}/p2p/{peer_id}
BOOTSTRAP_NODES: Tuple[str, ...] = (
    # GCP relay node
    "/ip4/35.237.133.42/tcp/4001/p2p/12D3KooWBeY3FuPXggnUu8f56TQde1xfvFpdsLV5coXptn5ztVJG",

    # Disabled until the relay connection is verified
    # "/ip4/134.199.240.145/tcp/4001/p2p/12D3KooWFYTuQ2FY8tXRtFKfpXkTSipTF55mZkLntwtN1nHu83qE",
    # "/ip4/104.198.62.217/tcp/4001/p2p/12D3KooWETLNJUVLbkAbenbSPPdwN9ZLkBU3TLfyAeEUW2dsVptr",
    # "/ip4/104.198.62.217/tcp/4002/p2p/12D3KooWGV5BUSYMhNMrhdPh9EUbuLrvAiDsMXEMRpGGvt4LQneA",
    # "/ip4/130.245.173.105/tcp/4001/p2p/12D3KooWSDDA2jyo6Cynr7SHPfhdQoQazu1jdUEAp7rLKKKLqqTr",
)

# Docker test environment
COMPOSE_FILE = "docker-compose.nat-test.yml"
DOCKERFILE = "Dockerfile.nat-test"
DOCKER_IMAGE = "chiral-network-nat-test"
BOOTSTRAP_SERVICE = "bootstrap"
BOOTSTRAP_CONTAINER = "chiral-bootstrap"
PEER_CONTAINERS: Tuple[str, ...] = (
    "chiral-peer1",
    "chiral-peer2",
    "chiral-peer3",
    "chiral-public-peer",
)

# Literal token in the compose file replaced by the bootstrap peer ID
BOOTSTRAP_PLACEHOLDER = "BOOTSTRAP_PEER_ID"

# Peer ID extraction
EXTRACTION_PARAMS = {
    "max_attempts": 20,
    "delay": 1.0,             # seconds between attempts
    "progress_every": 5,      # attempts between progress lines
}

ENV_PREFIX = "CHIRAL_NAT_"


def get_bootstrap_nodes() -> List[str]:
    """Return the bootstrap node multiaddresses, in priority order."""
    return list(BOOTSTRAP_NODES)


def bootstrap_peer_ids() -> List[str]:
    """Return the peer ID component of every bootstrap multiaddress."""
    from multiaddr import Multiaddr

    return [Multiaddr(addr).value_for_protocol("p2p") for addr in BOOTSTRAP_NODES]


def _env(name: str, default: str) -> str:
    return os.environ.get(ENV_PREFIX + name, default)


def _env_optional(name: str) -> Optional[str]:
    value = os.environ.get(ENV_PREFIX + name)
    return value or None


@dataclass
class HarnessConfig:
    """
    Settings for one NAT test run.

    Usage:
        config = HarnessConfig.from_env()
        config.extraction_attempts = 30
    """

    compose_file: str = COMPOSE_FILE
    dockerfile: str = DOCKERFILE
    image: str = DOCKER_IMAGE
    build_context: str = "."

    bootstrap_service: str = BOOTSTRAP_SERVICE
    bootstrap_container: str = BOOTSTRAP_CONTAINER
    peer_containers: List[str] = field(default_factory=lambda: list(PEER_CONTAINERS))

    # Container whose command line must carry the bootstrap peer ID
    verify_container: str = "chiral-peer1"
    # Container scanned for NAT traversal counters
    activity_container: str = "chiral-peer1"

    placeholder: str = BOOTSTRAP_PLACEHOLDER

    extraction_attempts: int = EXTRACTION_PARAMS["max_attempts"]
    extraction_delay: float = EXTRACTION_PARAMS["delay"]
    progress_every: int = EXTRACTION_PARAMS["progress_every"]

    stabilization: StabilizationPolicy = field(default_factory=StabilizationPolicy)

    # e.g. "docker compose" or "docker-compose"; detected when unset
    compose_command: Optional[str] = None
    # Markdown report is written here when set
    report_dir: Optional[str] = None

    @classmethod
    def from_env(cls) -> "HarnessConfig":
        """Build a config from CHIRAL_NAT_* environment variables."""
        peers = _env_optional("PEER_CONTAINERS")
        min_peers = _env_optional("MIN_CONNECTED_PEERS")

        config = cls(
            compose_file=_env("COMPOSE_FILE", COMPOSE_FILE),
            dockerfile=_env("DOCKERFILE", DOCKERFILE),
            image=_env("IMAGE", DOCKER_IMAGE),
            build_context=_env("BUILD_CONTEXT", "."),
            bootstrap_service=_env("BOOTSTRAP_SERVICE", BOOTSTRAP_SERVICE),
            bootstrap_container=_env("BOOTSTRAP_CONTAINER", BOOTSTRAP_CONTAINER),
            peer_containers=(
                [p.strip() for p in peers.split(",") if p.strip()]
                if peers else list(PEER_CONTAINERS)
            ),
            verify_container=_env("VERIFY_CONTAINER", "chiral-peer1"),
            activity_container=_env("ACTIVITY_CONTAINER", "chiral-peer1"),
            placeholder=_env("PLACEHOLDER", BOOTSTRAP_PLACEHOLDER),
            extraction_attempts=int(_env("EXTRACTION_ATTEMPTS", str(EXTRACTION_PARAMS["max_attempts"]))),
            extraction_delay=float(_env("EXTRACTION_DELAY", str(EXTRACTION_PARAMS["delay"]))),
            progress_every=int(_env("PROGRESS_EVERY", str(EXTRACTION_PARAMS["progress_every"]))),
            stabilization=StabilizationPolicy(
                timeout=float(_env("STABILIZE_SECONDS", "60")),
                poll_interval=float(_env("STABILIZE_POLL_INTERVAL", "5")),
                min_connected_peers=int(min_peers) if min_peers else None,
            ),
            compose_command=_env_optional("COMPOSE_COMMAND"),
            report_dir=_env_optional("REPORT_DIR"),
        )
        logger.debug(f"Harness config from env: {config}")
        return config

    @property
    def bootstrap_log_hint(self) -> str:
        return f"Check container logs with: docker logs {self.bootstrap_container}"
