"""
chiralnat/errors.py

Error taxonomy for the NAT test harness.

Fatal errors propagate out of the orchestrator and are turned into a
non-zero exit status by the CLI. Verification mismatches are never
raised; they are logged as warnings.
"""

from typing import Optional, Sequence


class HarnessError(Exception):
    """Base class for harness errors."""


class CommandFailure(HarnessError):
    """A command could not be launched at all (missing binary, permissions)."""

    def __init__(self, args: Sequence[str], reason: str):
        self.command = list(args)
        self.reason = reason
        super().__init__(f"Could not run {' '.join(self.command)}: {reason}")


class CommandUnsuccessful(HarnessError):
    """A command ran but reported a non-zero exit status."""

    def __init__(
        self,
        args: Sequence[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
        step: Optional[str] = None,
    ):
        self.command = list(args)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.step = step
        label = step or " ".join(self.command)
        super().__init__(f"{label} failed with exit status {returncode}")


class ExtractionTimeout(HarnessError):
    """The bootstrap peer ID never showed up in the logs."""

    def __init__(self, attempts: int, hint: str = ""):
        self.attempts = attempts
        self.hint = hint
        message = f"Could not extract peer ID from bootstrap logs after {attempts} attempts"
        if hint:
            message = f"{message}. {hint}"
        super().__init__(message)
