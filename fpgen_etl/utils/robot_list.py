"""
Robot user-agent pattern source

Retrieves the COUNTER-Robots list (a JSON array of ``{"pattern": ...}``
objects) and compiles each pattern as a case-insensitive regular expression.
The robots list is available under the MIT license, for details see
https://github.com/atmire/COUNTER-Robots/blob/master/LICENSE
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, List, Optional, Pattern

import requests

logger = logging.getLogger(__name__)

DEFAULT_ROBOTS_LIST_URL = (
    "https://raw.githubusercontent.com/atmire/COUNTER-Robots/master/COUNTER_Robots_list.json"
)


class RobotListError(RuntimeError):
    """The robot pattern list could not be retrieved or is malformed"""


def compile_robot_patterns(entries: Any) -> List[Pattern]:
    """Validate a ``[{"pattern": str}, ...]`` payload and compile it"""
    if not isinstance(entries, list):
        raise RobotListError(
            f"Robot list must be a JSON array, got {type(entries).__name__}"
        )

    compiled = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict) or not isinstance(entry.get("pattern"), str):
            raise RobotListError(f"Robot list entry {index} has no string 'pattern': {entry!r}")
        try:
            compiled.append(re.compile(entry["pattern"], re.IGNORECASE))
        except re.error as e:
            raise RobotListError(
                f"Robot list entry {index} is not a valid pattern ({entry['pattern']!r}): {e}"
            ) from e

    return compiled


def fetch_robot_patterns(
    url: str = DEFAULT_ROBOTS_LIST_URL, timeout: Optional[float] = None
) -> List[Pattern]:
    """Download and compile the robot list. Single attempt, no caching."""
    logger.info(f"Fetching robot user-agent list from {url}")
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
        payload = response.json()
    except requests.RequestException as e:
        raise RobotListError(f"Failed to retrieve robot list from {url}: {e}") from e
    except ValueError as e:
        raise RobotListError(f"Robot list at {url} is not valid JSON: {e}") from e

    patterns = compile_robot_patterns(payload)
    logger.info(f"Loaded {len(patterns)} robot patterns")
    return patterns


def load_robot_patterns_file(path: Path) -> List[Pattern]:
    """Read a local copy of the robot list (used by --local-only runs)"""
    logger.info(f"Loading robot user-agent list from {path}")
    try:
        with open(path, encoding="utf-8-sig") as f:
            payload = json.load(f)
    except OSError as e:
        raise RobotListError(f"Failed to read robot list {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise RobotListError(f"Robot list {path} is not valid JSON: {e}") from e

    patterns = compile_robot_patterns(payload)
    logger.info(f"Loaded {len(patterns)} robot patterns")
    return patterns
