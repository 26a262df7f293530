"""
chiralnat/harness/extractor.py

Bootstrap peer ID extraction from container logs.

The bootstrap node prints its identity in the libp2p swarm log line
(`local_peer_id=12D3KooW...`). The container needs a moment to get there,
so the logs are polled a bounded number of times.
"""

import re
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import trio

from ..errors import CommandUnsuccessful, ExtractionTimeout

logger = logging.getLogger("chiralnat.harness.extractor")

# Ed25519 identity multihash in base58: "12D3KooW" plus at least 44 more chars
PEER_ID_PATTERN = re.compile(r"local_peer_id=(12D3[A-Za-z0-9]{44,})")

LogSource = Callable[[], Awaitable[str]]


def find_peer_id(text: str) -> Optional[str]:
    """Return the first bootstrap peer ID found in text, if any."""
    match = PEER_ID_PATTERN.search(text)
    if match:
        return match.group(1)
    return None


@dataclass(frozen=True)
class ExtractionResult:
    """Peer ID plus the attempt that found it."""
    peer_id: str
    attempt: int


class PeerIdExtractor:
    """
    Polls a log source until the bootstrap peer ID appears.

    Each attempt sleeps `delay` seconds and then takes a fresh capture
    from `fetch_logs`. The first match ends the loop.

    Usage:
        extractor = PeerIdExtractor(lambda: compose.logs("chiral-bootstrap"))
        result = await extractor.extract()
    """

    def __init__(
        self,
        fetch_logs: LogSource,
        max_attempts: int = 20,
        delay: float = 1.0,
        progress_every: int = 5,
        hint: str = "",
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.fetch_logs = fetch_logs
        self.max_attempts = max_attempts
        self.delay = delay
        self.progress_every = progress_every
        self.hint = hint
        self.attempts_made = 0

    async def extract(self) -> ExtractionResult:
        """
        Run the retry loop.

        Returns:
            ExtractionResult for the first capture containing a peer ID

        Raises:
            ExtractionTimeout: no capture matched within max_attempts
            CommandFailure: the log command could not be launched
        """
        self.attempts_made = 0

        for attempt in range(1, self.max_attempts + 1):
            await trio.sleep(self.delay)
            self.attempts_made = attempt

            try:
                text = await self.fetch_logs()
            except CommandUnsuccessful as e:
                logger.debug(f"Log fetch failed on attempt {attempt}: {e}")
                text = ""

            peer_id = find_peer_id(text)
            if peer_id:
                logger.info(f"Bootstrap Peer ID: {peer_id} (found after {attempt} attempts)")
                return ExtractionResult(peer_id=peer_id, attempt=attempt)

            if self.progress_every and attempt % self.progress_every == 0:
                logger.info(f"Still waiting for bootstrap peer ID... ({attempt}/{self.max_attempts})")

        raise ExtractionTimeout(self.max_attempts, self.hint)
