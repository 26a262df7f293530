"""
chiralnat/docker/runner.py

Run external commands and capture their output.
"""

import logging
from dataclasses import dataclass
from typing import List, Sequence

import trio

from ..errors import CommandFailure, CommandUnsuccessful

logger = logging.getLogger("chiralnat.docker.runner")


@dataclass
class CommandResult:
    """Exit status and captured output of one command."""
    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stdout followed by stderr, like `2>&1` without interleaving."""
        return self.stdout + self.stderr


class CommandRunner:
    """Runs commands with trio and captures stdout/stderr."""

    async def run(self, args: Sequence[str], check: bool = False) -> CommandResult:
        """
        Run a command to completion.

        Args:
            args: Program and arguments
            check: Raise CommandUnsuccessful on a non-zero exit

        Raises:
            CommandFailure: the program could not be started
        """
        args = list(args)
        logger.debug(f"Running: {' '.join(args)}")
        try:
            completed = await trio.run_process(
                args,
                capture_stdout=True,
                capture_stderr=True,
                check=False,
            )
        except OSError as e:
            raise CommandFailure(args, str(e)) from e

        result = CommandResult(
            args=args,
            returncode=completed.returncode,
            stdout=completed.stdout.decode("utf-8", errors="replace"),
            stderr=completed.stderr.decode("utf-8", errors="replace"),
        )
        if not result.ok:
            logger.debug(f"{args[0]} exited with {result.returncode}: {result.stderr.strip()}")
            if check:
                raise CommandUnsuccessful(args, result.returncode, result.stdout, result.stderr)
        return result
