"""
chiralnat/harness/

Log-driven pieces of the NAT test: peer ID extraction, compose file
rewriting, connectivity classification and stabilization waits.
The run sequence itself lives in harness.orchestrator.
"""

from .extractor import PeerIdExtractor, ExtractionResult, find_peer_id
from .rewriter import ComposeTemplate, apply, restore, is_reversible
from .classifier import ConnectivityStatus, NatActivity, classify, count_markers, is_connected
from .stabilization import StabilizationPolicy, StabilizationResult, wait_for_stabilization

__all__ = [
    "PeerIdExtractor",
    "ExtractionResult",
    "find_peer_id",
    "ComposeTemplate",
    "apply",
    "restore",
    "is_reversible",
    "ConnectivityStatus",
    "NatActivity",
    "classify",
    "count_markers",
    "is_connected",
    "StabilizationPolicy",
    "StabilizationResult",
    "wait_for_stabilization",
]
