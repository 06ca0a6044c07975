"""
Record Filter
Turns raw network-capture records into flat, path-specific records

A capture record holds two independently captured views of the same browser
session: the request fingerprint (headers, HTTP version) and the browser
fingerprint (navigator/screen attributes). A record is kept only when both
views agree on the user-agent, the screen geometry is plausible for the
device, and the user-agent does not belong to a robot. Kept records are then
projected onto either the header map or the browser-fingerprint map.
"""

import json
import logging
import re
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Pattern, Sequence, Set

from fpgen_etl.pipeline.constants import (
    FINGERPRINTS_PATH,
    HEADERS_PATH,
    HTTP_VERSION_NODE_NAME,
)

logger = logging.getLogger(__name__)

MOBILE_USER_AGENT = re.compile(r"phone|android|mobile", re.IGNORECASE)
ROBOT_USER_AGENT = re.compile(r"(bot|bots|slurp|spider|crawler|crawl)\b", re.IGNORECASE)

MIN_DESKTOP_SCREEN_WIDTH = 1280


def load_capture_records(dataset_path: Path) -> List[Dict[str, Any]]:
    """Read the whole capture dataset (a JSON array) into memory"""
    # utf-8-sig drops the BOM some exports start with
    with open(dataset_path, encoding="utf-8-sig") as f:
        records = json.load(f)

    if not isinstance(records, list):
        raise ValueError(
            f"Dataset {dataset_path} must contain a JSON array, got {type(records).__name__}"
        )

    logger.info(f"Loaded {len(records)} capture records from {dataset_path}")
    return records


def request_user_agent(headers: Dict[str, Any]) -> Optional[str]:
    """User-agent header, whichever casing the client sent"""
    user_agent = headers.get("user-agent")
    if user_agent is None:
        user_agent = headers.get("User-Agent")
    return user_agent


class RecordFilter:
    """Consistency, plausibility and robot filters for capture records"""

    def __init__(self, robot_patterns: Sequence[Pattern], path: str = HEADERS_PATH):
        if path not in (HEADERS_PATH, FINGERPRINTS_PATH):
            raise ValueError(f"Unknown build path: {path}")

        self.robot_patterns = list(robot_patterns)
        self.path = path

        self.discarded_user_agents: Set[str] = set()
        self.stats = {
            "total_records": 0,
            "accepted_records": 0,
            "dropped": defaultdict(int),
        }

    def is_consistent(self, record: Dict[str, Any]) -> bool:
        """Header user-agent must equal the fingerprint user-agent exactly"""
        headers = record["requestFingerprint"]["headers"]
        user_agent = record["browserFingerprint"].get("userAgent")
        return user_agent is not None and request_user_agent(headers) == user_agent

    def is_plausible_device(self, record: Dict[str, Any]) -> bool:
        """Landscape desktop screens or portrait mobile screens only"""
        fingerprint = record["browserFingerprint"]
        screen = fingerprint.get("screen") or {}
        width, height = screen.get("width"), screen.get("height")
        if width is None or height is None:
            return False

        if width >= MIN_DESKTOP_SCREEN_WIDTH and width > height:
            return True
        return width < height and bool(MOBILE_USER_AGENT.search(fingerprint["userAgent"]))

    def is_robot(self, user_agent: str) -> bool:
        if ROBOT_USER_AGENT.search(user_agent):
            return True
        return any(pattern.search(user_agent) for pattern in self.robot_patterns)

    def project(self, record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Flatten a record for the current build path, None if it must be dropped"""
        if self.path == FINGERPRINTS_PATH:
            return dict(record["browserFingerprint"])

        request_fingerprint = record["requestFingerprint"]
        projected = dict(request_fingerprint["headers"])
        projected[HTTP_VERSION_NODE_NAME] = f"_{request_fingerprint['httpVersion']}_"

        # HTTP/1.1 captures carrying a lowercase user-agent header are skipped
        if projected[HTTP_VERSION_NODE_NAME] == "_1.1_" and "user-agent" in projected:
            return None
        return projected

    def _drop(self, reason: str, user_agent: Optional[str]):
        self.stats["dropped"][reason] += 1
        if user_agent:
            self.discarded_user_agents.add(user_agent)

    def filter_records(self, records: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Apply every predicate in order; a record is dropped at the first failure"""
        accepted = []
        self.stats["total_records"] += len(records)

        for record in records:
            user_agent = record["browserFingerprint"].get("userAgent")

            if not self.is_consistent(record):
                self._drop("user_agent_mismatch", user_agent)
                continue

            if not self.is_plausible_device(record):
                self._drop("implausible_device", user_agent)
                continue

            if self.is_robot(user_agent):
                self._drop("robot", user_agent)
                continue

            projected = self.project(record)
            if projected is None:
                self._drop("duplicate_user_agent_header", user_agent)
                continue

            accepted.append(projected)

        self.stats["accepted_records"] += len(accepted)
        logger.info(
            f"Kept {len(accepted)} of {len(records)} records for the {self.path} path"
        )
        for reason, count in sorted(self.stats["dropped"].items()):
            logger.debug(f"  Dropped ({reason}): {count}")

        return accepted

    def get_report(self) -> Dict[str, Any]:
        """Filtering summary for the build report"""
        return {
            "path": self.path,
            "total_records": self.stats["total_records"],
            "accepted_records": self.stats["accepted_records"],
            "dropped": dict(self.stats["dropped"]),
            "discarded_user_agents": sorted(self.discarded_user_agents),
        }
