"""
chiralnat/harness/report.py

Markdown report for a finished NAT test run.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from ..config import HarnessConfig
from .classifier import (
    PEER_EVENT_KEYWORDS,
    RELAY_EVENT_KEYWORDS,
    matching_lines,
    tail,
)
from .orchestrator import RunReport

logger = logging.getLogger("chiralnat.harness.report")

REPORT_PREFIX = "NAT_DOCKER_TEST_REPORT_"

TOPOLOGY = """\
                 +-----------------+
                 |  Public Network |
                 |  172.20.0.0/16  |
                 +--------+--------+
                          |
        +-----------------+-----------------+
        |                 |                 |
  +-----+------+    +-----+------+    +-----+------+
  | Bootstrap  |    |Public Peer |    |   Router   |
  |172.20.0.10 |    |172.20.0.20 |    |  (Docker)  |
  |  (Relay)   |    |  (No NAT)  |    |            |
  +------------+    +------------+    +-----+------+
                                            |
                        +-------------------+-------------------+
                        |                                       |
               +--------+--------+                     +--------+--------+
               |Private Network 1|                     |Private Network 2|
               |   10.1.0.0/24   |                     |   10.2.0.0/24   |
               +--------+--------+                     +--------+--------+
                        |                                       |
             +----------+----------+                            |
             |                     |                            |
       +-----+------+        +-----+------+              +------+-----+
       |   Peer 1   |        |   Peer 3   |              |   Peer 2   |
       | 10.1.0.10  |        | 10.1.0.11  |              | 10.2.0.10  |
       |  (NAT 1)   |        |  (NAT 1)   |              |  (NAT 2)   |
       +------------+        +------------+              +------------+"""


def report_filename(generated_at: datetime) -> str:
    return f"{REPORT_PREFIX}{generated_at.strftime('%Y%m%d_%H%M%S')}.md"


def _code_block(lines: List[str]) -> List[str]:
    return ["```", *lines, "```"]


def render_report(
    report: RunReport,
    config: HarnessConfig,
    generated_at: Optional[datetime] = None,
) -> str:
    """Render the run as a Markdown document."""
    generated_at = generated_at or datetime.now()
    activity_logs = report.logs.get(config.activity_container, "")
    bootstrap_logs = report.logs.get(config.bootstrap_container, "")

    out: List[str] = [
        "# Docker NAT Traversal Test Report",
        "",
        f"**Date:** {generated_at:%Y-%m-%d %H:%M:%S}",
        "**Test Environment:** Docker containers with simulated NAT",
        f"**Bootstrap Peer ID:** {report.peer_id or 'unknown'}",
        "",
        "## Network Topology",
        "",
        *_code_block([TOPOLOGY]),
        "",
        "## Test Scenarios",
        "",
        "### 1. Peer Discovery",
        "",
    ]
    for name, status in report.statuses.items():
        count = status.peer_count if status.peer_count is not None else "Unknown"
        out.append(f"- **{name}**: {count} peers ({status.describe()})")

    out += [
        "",
        "### 2. DCUtR Hole-Punching Results",
        "",
        *_code_block(matching_lines(activity_logs, ("DCUtR",), limit=10)),
        "",
        "### 3. AutoNAT Reachability Detection",
        "",
        *_code_block(matching_lines(activity_logs, ("reachability", "AutoNAT"), limit=10)),
        "",
        "### 4. Relay Circuit Usage",
        "",
        *_code_block(matching_lines(bootstrap_logs, ("relay", "circuit"), limit=10)),
        "",
        "## NAT Events",
        "",
    ]
    for name, text in report.logs.items():
        keywords = RELAY_EVENT_KEYWORDS if name == config.bootstrap_container else PEER_EVENT_KEYWORDS
        out += [f"### {name}", "", *_code_block(matching_lines(text, keywords)), ""]

    out += ["## Full Container Logs", ""]
    for name, text in report.logs.items():
        out += [
            "<details>",
            f"<summary>{name} logs</summary>",
            "",
            *_code_block(tail(text, 50)),
            "</details>",
            "",
        ]

    activity_status = report.statuses.get(config.activity_container)
    discovery_ok = activity_status is not None and activity_status.peer_count is not None
    reachability_ok = activity_status is not None and activity_status.reachability is not None
    relay_used = any("relay" in line for line in activity_logs.splitlines())

    out += [
        "## Conclusion",
        "",
        f"- **Peer Discovery:** {'Working' if discovery_ok else 'Needs verification'}",
        f"- **DCUtR Hole-Punching:** "
        f"{'Successful' if report.activity.hole_punch_successes > 0 else 'Not detected'}",
        f"- **Relay Fallback:** {'Available' if relay_used else 'Not used'}",
        f"- **AutoNAT Detection:** {'Working' if reachability_ok else 'Needs verification'}",
        f"- **Bootstrap Config:** {'Verified' if report.config_verified else 'Mismatch'}",
        "",
    ]
    return "\n".join(out)


def write_report(
    report: RunReport,
    config: HarnessConfig,
    directory: Union[str, Path],
    generated_at: Optional[datetime] = None,
) -> Path:
    """Write the report into directory and return its path."""
    generated_at = generated_at or datetime.now()
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / report_filename(generated_at)
    path.write_text(render_report(report, config, generated_at), encoding="utf-8")
    logger.info(f"Report generated: {path}")
    return path
