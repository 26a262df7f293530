"""
Shared test helpers: a scripted stand-in for CommandRunner.
"""

from typing import Callable, List, Optional, Sequence, Tuple, Union

import pytest

from chiralnat.docker.runner import CommandResult
from chiralnat.errors import CommandUnsuccessful

Responder = Callable[[List[str]], CommandResult]


class FakeRunner:
    """
    Records commands and answers them from scripted handlers.

    Handlers match on an argument prefix (or the exact argument list with
    exact=True); the most recently registered match wins. Unmatched
    commands succeed with empty output.
    """

    def __init__(self):
        self.calls: List[List[str]] = []
        self._handlers: List[Tuple[List[str], bool, Responder]] = []

    def on(
        self,
        prefix: Sequence[str],
        stdout: Union[str, Sequence[str]] = "",
        stderr: str = "",
        returncode: int = 0,
        exact: bool = False,
        func: Optional[Responder] = None,
    ) -> None:
        """
        Script a response.

        A list of stdout values is served one per call; the last one repeats.
        """
        if func is None:
            outputs = [stdout] if isinstance(stdout, str) else list(stdout)

            def func(args, _outputs=outputs):
                out = _outputs.pop(0) if len(_outputs) > 1 else _outputs[0]
                return CommandResult(args, returncode, out, stderr)

        self._handlers.append((list(prefix), exact, func))

    def calls_matching(self, prefix: Sequence[str]) -> List[List[str]]:
        prefix = list(prefix)
        return [c for c in self.calls if c[:len(prefix)] == prefix]

    async def run(self, args, check: bool = False) -> CommandResult:
        args = list(args)
        self.calls.append(args)

        result = CommandResult(args, 0)
        for prefix, exact, func in reversed(self._handlers):
            matched = args == prefix if exact else args[:len(prefix)] == prefix
            if matched:
                result = func(args)
                break

        if check and not result.ok:
            raise CommandUnsuccessful(args, result.returncode, result.stdout, result.stderr)
        return result


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()
