"""
chiralnat/harness/stabilization.py

Waiting for the peer network to settle after all containers are up.

Two strategies:
- fixed: sleep for the whole timeout (the historical behaviour)
- polling: check a readiness predicate every poll_interval and stop early
  once it holds, giving up quietly when the timeout runs out
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import trio

logger = logging.getLogger("chiralnat.harness.stabilization")

ReadinessProbe = Callable[[], Awaitable[bool]]


@dataclass
class StabilizationPolicy:
    """How long, and how, to wait for the network to stabilize."""
    timeout: float = 60.0                       # seconds
    poll_interval: float = 5.0                  # seconds, polling mode only
    min_connected_peers: Optional[int] = None   # None = fixed wait

    @property
    def is_polling(self) -> bool:
        return self.min_connected_peers is not None


@dataclass
class StabilizationResult:
    """Outcome of a stabilization wait."""
    mode: str                 # "fixed" or "polling"
    ready: Optional[bool]     # None for a fixed wait
    elapsed: float
    polls: int = 0


async def wait_for_stabilization(
    policy: StabilizationPolicy,
    probe: Optional[ReadinessProbe] = None,
) -> StabilizationResult:
    """
    Wait for the network to stabilize according to policy.

    Args:
        policy: Wait strategy and limits
        probe: Readiness predicate, required in polling mode

    Returns:
        StabilizationResult; never raises on timeout
    """
    started = trio.current_time()

    if not policy.is_polling:
        logger.info(f"Waiting {policy.timeout:g}s for network stabilization...")
        await trio.sleep(policy.timeout)
        return StabilizationResult(
            mode="fixed",
            ready=None,
            elapsed=trio.current_time() - started,
        )

    if probe is None:
        raise ValueError("Polling stabilization needs a readiness probe")

    logger.info(
        f"Polling for network readiness every {policy.poll_interval:g}s "
        f"(timeout {policy.timeout:g}s, min peers {policy.min_connected_peers})..."
    )
    polls = 0
    ready = False
    with trio.move_on_after(policy.timeout):
        while True:
            polls += 1
            if await probe():
                ready = True
                break
            await trio.sleep(policy.poll_interval)

    elapsed = trio.current_time() - started
    if ready:
        logger.info(f"Network ready after {elapsed:.0f}s ({polls} polls)")
    else:
        logger.warning(f"Network not ready after {elapsed:.0f}s ({polls} polls), continuing")

    return StabilizationResult(mode="polling", ready=ready, elapsed=elapsed, polls=polls)
