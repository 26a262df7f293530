"""
chiralnat/docker/compose.py

Docker and Docker Compose commands used by the NAT test harness.

Handles both Compose flavours:
- v1: standalone `docker-compose` binary
- v2: `docker compose` CLI plugin
"""

import shlex
import shutil
import logging
from typing import List, Optional, Sequence

from ..errors import CommandFailure, CommandUnsuccessful
from .runner import CommandResult, CommandRunner

logger = logging.getLogger("chiralnat.docker.compose")

STARTED_AT_FORMAT = "{{.State.StartedAt}}"
CONFIG_CMD_FORMAT = "{{.Config.Cmd}}"


async def detect_compose_command(runner: CommandRunner) -> List[str]:
    """
    Detect which Docker Compose flavour is installed.

    Checks, in order:
    - `docker-compose` on PATH (v1)
    - `docker compose version` succeeding (v2 plugin)

    Raises:
        CommandFailure: neither flavour is available
    """
    if shutil.which("docker-compose"):
        logger.debug("Using docker-compose (v1)")
        return ["docker-compose"]

    if shutil.which("docker"):
        result = await runner.run(["docker", "compose", "version"])
        if result.ok:
            logger.debug("Using docker compose (v2)")
            return ["docker", "compose"]

    raise CommandFailure(
        ["docker", "compose"],
        "Neither 'docker-compose' nor 'docker compose' found",
    )


class DockerCompose:
    """
    Thin async wrapper over the docker CLI for one compose file.

    Usage:
        compose = DockerCompose(CommandRunner(), "docker-compose.nat-test.yml")
        await compose.resolve_command()
        await compose.up("bootstrap")
        text = await compose.logs("chiral-bootstrap")
    """

    def __init__(
        self,
        runner: CommandRunner,
        compose_file: str,
        compose_command: Optional[Sequence[str]] = None,
    ):
        self.runner = runner
        self.compose_file = compose_file
        self._compose_command: Optional[List[str]] = (
            list(compose_command) if compose_command else None
        )

    @classmethod
    def from_command_string(
        cls, runner: CommandRunner, compose_file: str, command: Optional[str]
    ) -> "DockerCompose":
        return cls(runner, compose_file, shlex.split(command) if command else None)

    @property
    def compose_command(self) -> List[str]:
        if self._compose_command is None:
            raise RuntimeError("Compose command not resolved; call resolve_command() first")
        return self._compose_command

    @property
    def compose_command_display(self) -> str:
        """Compose invocation as a user would type it."""
        command = self._compose_command or ["docker", "compose"]
        return " ".join(command + ["-f", self.compose_file])

    async def resolve_command(self) -> List[str]:
        if self._compose_command is None:
            self._compose_command = await detect_compose_command(self.runner)
        return self._compose_command

    def _compose_args(self, *args: str) -> List[str]:
        return self.compose_command + ["-f", self.compose_file, *args]

    async def check_prerequisites(self) -> None:
        """
        Make sure docker is installed and usable by this user.

        Raises:
            CommandFailure: docker is not installed
            CommandUnsuccessful: the daemon is unreachable or access is denied
        """
        logger.info("Checking prerequisites...")
        if not shutil.which("docker"):
            raise CommandFailure(["docker"], "Docker is not installed")

        result = await self.runner.run(["docker", "ps"])
        if not result.ok:
            logger.warning(
                "Cannot run docker commands. Add your user to the docker group "
                "(sudo usermod -aG docker $USER) and log in again, or run with sudo"
            )
            raise CommandUnsuccessful(
                result.args, result.returncode, result.stdout, result.stderr,
                step="docker ps",
            )
        await self.resolve_command()
        logger.info("All prerequisites met")

    async def down(self) -> CommandResult:
        """Stop the environment and remove its volumes (best-effort)."""
        result = await self.runner.run(self._compose_args("down", "-v"))
        if not result.ok:
            logger.debug(f"compose down exited with {result.returncode}")
        return result

    async def remove_container(self, container: str) -> CommandResult:
        """Force-remove a container so its old logs go away (best-effort)."""
        return await self.runner.run(["docker", "rm", "-f", container])

    async def prune_networks(self) -> CommandResult:
        """Remove unused docker networks (best-effort)."""
        return await self.runner.run(["docker", "network", "prune", "-f"])

    async def build_image(self, dockerfile: str, tag: str, context: str = ".") -> CommandResult:
        """
        Build the test image.

        Raises:
            CommandUnsuccessful: the build failed
        """
        result = await self.runner.run(["docker", "build", "-f", dockerfile, "-t", tag, context])
        if not result.ok:
            raise CommandUnsuccessful(
                result.args, result.returncode, result.stdout, result.stderr,
                step="Docker build",
            )
        return result

    async def up(self, *services: str) -> CommandResult:
        """
        Start services detached; all services when none are given.

        Raises:
            CommandUnsuccessful: compose reported failure
        """
        result = await self.runner.run(self._compose_args("up", "-d", *services))
        if not result.ok:
            label = f"Starting {', '.join(services)}" if services else "Starting all services"
            raise CommandUnsuccessful(
                result.args, result.returncode, result.stdout, result.stderr,
                step=label,
            )
        return result

    async def inspect(self, container: str, fmt: str) -> str:
        """Formatted `docker inspect` output, or "" when inspect fails."""
        result = await self.runner.run(["docker", "inspect", "--format", fmt, container])
        if not result.ok:
            logger.warning(f"docker inspect {container} failed: {result.stderr.strip()}")
            return ""
        return result.stdout.strip()

    async def started_at(self, container: str) -> str:
        """Container start timestamp, usable as `docker logs --since`."""
        return await self.inspect(container, STARTED_AT_FORMAT)

    async def command_line(self, container: str) -> str:
        return await self.inspect(container, CONFIG_CMD_FORMAT)

    async def logs(self, container: str, since: Optional[str] = None, check: bool = False) -> str:
        """
        Combined stdout and stderr logs of a container.

        Args:
            container: Container name
            since: Only logs after this timestamp
            check: Raise CommandUnsuccessful instead of returning ""
        """
        args = ["docker", "logs"]
        if since:
            args += ["--since", since]
        args.append(container)

        result = await self.runner.run(args, check=check)
        if not result.ok:
            logger.debug(f"docker logs {container} failed: {result.stderr.strip()}")
            return ""
        return result.output
