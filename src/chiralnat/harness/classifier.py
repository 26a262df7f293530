"""
chiralnat/harness/classifier.py

Best-effort reading of connectivity and NAT traversal signals from
container logs.

Everything here is a pure function of the log text. A missing marker is a
negative result, never an error. Marker counting is case-sensitive and
counts non-overlapping occurrences; excerpt matching is case-insensitive.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

CONNECTED_MARKERS = ("Connected to", "Total connected peers")
TRAVERSAL_MARKERS = ("DCUtR", "AutoNAT", "Reachability")

PEER_COUNT_PATTERN = re.compile(r"peer count: ([0-9]+)")
REACHABILITY_PATTERN = re.compile(r"reachability: ([A-Za-z]+)")
HOLE_PUNCH_ATTEMPT_PATTERN = re.compile(r"DCUtR.*hole-punch")
HOLE_PUNCH_SUCCESS = "hole-punch succeeded"
RELAY_CIRCUIT_PATTERN = re.compile(r"relay.*circuit|circuit.*relay")

# Keywords for event excerpts, per node role
RELAY_EVENT_KEYWORDS = ("dcutr", "autonat", "relay", "reachability")
PEER_EVENT_KEYWORDS = ("dcutr", "autonat", "relay", "hole-punch", "direct connection")


def is_connected(text: str) -> bool:
    """True when the log shows at least one established connection."""
    return any(marker in text for marker in CONNECTED_MARKERS)


def count_markers(text: str, markers: Iterable[str] = TRAVERSAL_MARKERS) -> Dict[str, int]:
    """Count occurrences of each marker (case-sensitive)."""
    return {marker: text.count(marker) for marker in markers}


def latest_peer_count(text: str) -> Optional[int]:
    """Last `peer count: N` reported in the log."""
    counts = PEER_COUNT_PATTERN.findall(text)
    if not counts:
        return None
    return int(counts[-1])


def latest_reachability(text: str) -> Optional[str]:
    """Last AutoNAT `reachability: X` status reported in the log."""
    statuses = REACHABILITY_PATTERN.findall(text)
    if not statuses:
        return None
    return statuses[-1]


def count_lines(text: str, pattern: "re.Pattern") -> int:
    return sum(1 for line in text.splitlines() if pattern.search(line))


def matching_lines(text: str, keywords: Sequence[str], limit: int = 20) -> List[str]:
    """Last `limit` lines mentioning any keyword, case-insensitively."""
    lowered = [k.lower() for k in keywords]
    lines = [
        line for line in text.splitlines()
        if any(k in line.lower() for k in lowered)
    ]
    if limit <= 0:
        return lines
    return lines[-limit:]


def tail(text: str, limit: int = 50) -> List[str]:
    lines = text.splitlines()
    return lines[-limit:] if limit > 0 else lines


@dataclass
class NatActivity:
    """Hole-punching and relay activity seen in one container's logs."""
    hole_punch_attempts: int = 0
    hole_punch_successes: int = 0
    relay_circuits: int = 0

    @classmethod
    def from_logs(cls, text: str) -> "NatActivity":
        return cls(
            hole_punch_attempts=count_lines(text, HOLE_PUNCH_ATTEMPT_PATTERN),
            hole_punch_successes=sum(
                1 for line in text.splitlines() if HOLE_PUNCH_SUCCESS in line
            ),
            relay_circuits=count_lines(text, RELAY_CIRCUIT_PATTERN),
        )


@dataclass
class ConnectivityStatus:
    """Connectivity classification for one container."""
    name: str
    connected: bool
    marker_counts: Dict[str, int] = field(default_factory=dict)
    peer_count: Optional[int] = None
    reachability: Optional[str] = None

    @property
    def effective_peer_count(self) -> int:
        """Reported peer count, or 1/0 from the connected flag when none was logged."""
        if self.peer_count is not None:
            return self.peer_count
        return 1 if self.connected else 0

    def describe(self) -> str:
        return "Connected" if self.connected else "No connections detected"


def classify(name: str, text: str) -> ConnectivityStatus:
    """Classify a container's logs."""
    return ConnectivityStatus(
        name=name,
        connected=is_connected(text),
        marker_counts=count_markers(text),
        peer_count=latest_peer_count(text),
        reachability=latest_reachability(text),
    )
