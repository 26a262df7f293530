"""
chiralnat/harness/orchestrator.py

The NAT test sequence.

Stages run strictly in order, each one a prerequisite for the next:

    CLEANUP -> IMAGE_BUILD -> BOOTSTRAP_START -> PEER_ID_EXTRACTION
    -> CONFIG_REWRITE -> ALL_PEERS_START -> CONFIG_RESTORE
    -> STABILIZATION_WAIT -> VERIFICATION_REPORT

Image build, bootstrap start, all-peers start and peer ID extraction are
fatal on failure. Verification only ever produces warnings.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ..config import HarnessConfig
from ..docker.compose import DockerCompose
from .classifier import (
    ConnectivityStatus,
    NatActivity,
    classify,
    count_markers,
)
from .extractor import ExtractionResult, PeerIdExtractor
from .rewriter import ComposeTemplate
from .stabilization import StabilizationResult, wait_for_stabilization

logger = logging.getLogger("chiralnat.harness.orchestrator")


class Stage(Enum):
    """Stages of a NAT test run, in execution order."""
    CLEANUP = "cleanup"
    IMAGE_BUILD = "image_build"
    BOOTSTRAP_START = "bootstrap_start"
    PEER_ID_EXTRACTION = "peer_id_extraction"
    CONFIG_REWRITE = "config_rewrite"
    ALL_PEERS_START = "all_peers_start"
    CONFIG_RESTORE = "config_restore"
    STABILIZATION_WAIT = "stabilization_wait"
    VERIFICATION_REPORT = "verification_report"


@dataclass
class RunReport:
    """Everything a finished run observed."""
    peer_id: Optional[str] = None
    extraction_attempt: Optional[int] = None
    stages: List[Stage] = field(default_factory=list)
    stabilization: Optional[StabilizationResult] = None
    config_verified: Optional[bool] = None
    verify_command_line: str = ""
    statuses: Dict[str, ConnectivityStatus] = field(default_factory=dict)
    marker_counts: Dict[str, int] = field(default_factory=dict)
    activity: NatActivity = field(default_factory=NatActivity)
    logs: Dict[str, str] = field(default_factory=dict)

    @property
    def connected_containers(self) -> List[str]:
        return [name for name, status in self.statuses.items() if status.connected]


class NatTestRun:
    """
    Drives one NAT traversal test run against a docker compose environment.

    Usage:
        compose = DockerCompose(CommandRunner(), config.compose_file)
        report = await NatTestRun(config, compose).run()
    """

    def __init__(
        self,
        config: HarnessConfig,
        compose: DockerCompose,
        check_prerequisites: bool = True,
    ):
        self.config = config
        self.compose = compose
        self.check_prerequisites = check_prerequisites
        self.report = RunReport()

    def _enter(self, stage: Stage) -> None:
        self.report.stages.append(stage)
        logger.debug(f"Stage: {stage.value}")

    async def run(self) -> RunReport:
        """
        Execute every stage.

        Raises:
            CommandFailure: a command could not be launched
            CommandUnsuccessful: build or container start failed
            ExtractionTimeout: the bootstrap peer ID never appeared
        """
        if self.check_prerequisites:
            await self.compose.check_prerequisites()
        else:
            await self.compose.resolve_command()

        await self.cleanup()
        await self.build_image()
        await self.start_bootstrap()
        extraction = await self.extract_peer_id()
        await self.start_peers(extraction.peer_id)
        await self.stabilize()
        await self.verify()
        return self.report

    async def cleanup(self) -> None:
        self._enter(Stage.CLEANUP)
        logger.info("Cleaning up existing containers and networks...")
        await self.compose.down()
        # Old bootstrap logs would hand us a stale peer ID
        await self.compose.remove_container(self.config.bootstrap_container)
        await self.compose.prune_networks()

    async def build_image(self) -> None:
        self._enter(Stage.IMAGE_BUILD)
        logger.info(f"Building Docker image {self.config.image}...")
        await self.compose.build_image(
            self.config.dockerfile, self.config.image, self.config.build_context
        )
        logger.info("Docker image built")

    async def start_bootstrap(self) -> None:
        self._enter(Stage.BOOTSTRAP_START)
        logger.info("Starting bootstrap node...")
        await self.compose.up(self.config.bootstrap_service)

    async def extract_peer_id(self) -> ExtractionResult:
        self._enter(Stage.PEER_ID_EXTRACTION)
        logger.info("Waiting for bootstrap peer ID...")
        container = self.config.bootstrap_container

        # Only look at logs from this run of the container
        since = await self.compose.started_at(container)

        async def fetch_logs() -> str:
            return await self.compose.logs(container, since=since or None, check=True)

        extractor = PeerIdExtractor(
            fetch_logs,
            max_attempts=self.config.extraction_attempts,
            delay=self.config.extraction_delay,
            progress_every=self.config.progress_every,
            hint=self.config.bootstrap_log_hint,
        )
        result = await extractor.extract()
        self.report.peer_id = result.peer_id
        self.report.extraction_attempt = result.attempt
        return result

    async def start_peers(self, peer_id: str) -> None:
        template = ComposeTemplate(self.config.compose_file, self.config.placeholder)

        try:
            self._enter(Stage.CONFIG_REWRITE)
            template.inject(peer_id)
            self._enter(Stage.ALL_PEERS_START)
            logger.info("Starting all peers...")
            await self.compose.up()
            logger.info("All containers started")
        finally:
            if template.injected:
                self._enter(Stage.CONFIG_RESTORE)
                template.revert()

    async def stabilize(self) -> StabilizationResult:
        self._enter(Stage.STABILIZATION_WAIT)
        result = await wait_for_stabilization(self.config.stabilization, self.network_ready)
        self.report.stabilization = result
        return result

    async def network_ready(self) -> bool:
        """Every peer reports at least min_connected_peers connections."""
        threshold = self.config.stabilization.min_connected_peers
        if threshold is None:
            threshold = 1
        for container in self.config.peer_containers:
            status = classify(container, await self.compose.logs(container))
            if status.effective_peer_count < threshold:
                logger.debug(f"{container} not ready ({status.effective_peer_count} peers)")
                return False
        return True

    async def verify(self) -> RunReport:
        self._enter(Stage.VERIFICATION_REPORT)
        report = self.report

        logger.info("Verifying bootstrap peer ID configuration...")
        report.verify_command_line = await self.compose.command_line(self.config.verify_container)
        report.config_verified = bool(report.peer_id) and report.peer_id in report.verify_command_line
        if report.config_verified:
            logger.info(f"{self.config.verify_container} configured with correct bootstrap peer ID")
        else:
            logger.warning(
                f"{self.config.verify_container} bootstrap config may not match extracted peer ID "
                f"(expected {report.peer_id}, config: {report.verify_command_line})"
            )

        logger.info("Checking peer connections...")
        for container in self.config.peer_containers:
            text = await self.compose.logs(container)
            report.logs[container] = text
            status = classify(container, text)
            report.statuses[container] = status
            if status.connected:
                logger.info(f"{container}: {status.describe()}")
            else:
                logger.warning(f"{container}: {status.describe()}")

        if self.config.bootstrap_container not in report.logs:
            report.logs[self.config.bootstrap_container] = await self.compose.logs(
                self.config.bootstrap_container
            )

        logger.info("Checking NAT traversal activity...")
        activity_logs = report.logs.get(self.config.activity_container)
        if activity_logs is None:
            activity_logs = await self.compose.logs(self.config.activity_container)
            report.logs[self.config.activity_container] = activity_logs

        report.marker_counts = count_markers(activity_logs)
        report.activity = NatActivity.from_logs(activity_logs)
        for marker, count in report.marker_counts.items():
            logger.info(f"  {marker} mentions: {count}")
        logger.info(
            f"  Hole-punch attempts: {report.activity.hole_punch_attempts}, "
            f"successes: {report.activity.hole_punch_successes}, "
            f"relay circuits: {report.activity.relay_circuits}"
        )
        return report
