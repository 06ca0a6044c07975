"""
Attribute Deriver
Categorical browser, operating system and device labels from a user-agent

The heuristics are ordered rule tables of (pattern, outcome) evaluated top-down;
the first matching rule wins and the order encodes precedence, so the tables
must not be reordered.
"""

import re
from typing import Any, Callable, Dict, Optional, Pattern, Sequence, Tuple, Union

from fpgen_etl.pipeline.constants import (
    BROWSER_HTTP_NODE_NAME,
    BROWSER_NODE_NAME,
    DEVICE_NODE_NAME,
    HTTP_VERSION_NODE_NAME,
    MISSING_VALUE_DATASET_TOKEN,
    NON_GENERATED_NODES,
    OPERATING_SYSTEM_NODE_NAME,
)

Rule = Tuple[Pattern, Union[str, Callable[[re.Match], str]]]

# Applied before device detection; later tables may override it
TENTATIVE_OS_RULES: Sequence[Rule] = (
    (re.compile(r"windows", re.IGNORECASE), "windows"),
)

DEVICE_RULES: Sequence[Rule] = (
    (re.compile(r"phone|android|mobile", re.IGNORECASE), "mobile"),
)
DEFAULT_DEVICE = "desktop"

OS_RULES_BY_DEVICE: Dict[str, Sequence[Rule]] = {
    "mobile": (
        (re.compile(r"iphone|mac", re.IGNORECASE), "ios"),
        (re.compile(r"android", re.IGNORECASE), "android"),
    ),
    "desktop": (
        (re.compile(r"linux", re.IGNORECASE), "linux"),
        (re.compile(r"mac", re.IGNORECASE), "macos"),
    ),
}

CANONICAL_BROWSER_NAMES = {
    "chrome": "chrome",
    "crios": "chrome",
    "firefox": "firefox",
    "fxios": "firefox",
    "safari": "safari",
    "edge": "edge",
    "edg": "edge",
    "edga": "edge",
    "edgios": "edge",
}

BROWSER_RULES: Sequence[Rule] = (
    (
        re.compile(r"opr|yabrowser|samsungbrowser|ucbrowser|vivaldi", re.IGNORECASE),
        MISSING_VALUE_DATASET_TOKEN,
    ),
    (
        re.compile(r"(edg(a|ios|e)?)/([0-9.]*)", re.IGNORECASE),
        lambda match: f"edge/{match.group(3)}",
    ),
    (
        re.compile(r"(firefox|fxios|chrome|crios|safari)/([0-9.]*)", re.IGNORECASE),
        lambda match: f"{CANONICAL_BROWSER_NAMES[match.group(1).lower()]}/{match.group(2)}",
    ),
)


def apply_rules(rules: Sequence[Rule], user_agent: str, default: str) -> str:
    """Outcome of the first rule whose pattern matches, else the default"""
    for pattern, outcome in rules:
        match = pattern.search(user_agent)
        if match:
            return outcome(match) if callable(outcome) else outcome
    return default


def classify_device_os(user_agent: str) -> Tuple[str, str]:
    """Return (device, operating_system) for a user-agent"""
    operating_system = apply_rules(TENTATIVE_OS_RULES, user_agent, MISSING_VALUE_DATASET_TOKEN)
    device = apply_rules(DEVICE_RULES, user_agent, DEFAULT_DEVICE)
    operating_system = apply_rules(OS_RULES_BY_DEVICE[device], user_agent, operating_system)
    return device, operating_system


def classify_browser_version(user_agent: str) -> str:
    """``name/version`` of a supported browser, the missing token otherwise"""
    return apply_rules(BROWSER_RULES, user_agent, MISSING_VALUE_DATASET_TOKEN)


def http_major_version(http_version_token: Optional[str]) -> str:
    """'1' for HTTP/1.x tokens such as ``_1.1_``, '2' for anything else"""
    return "1" if (http_version_token or "").startswith("_1") else "2"


class AttributeDeriver:
    """Synthetic-attribute producer for header and input datasets"""

    # Node names this producer fills in after projection
    produces = NON_GENERATED_NODES

    @staticmethod
    def user_agent_of(record: Dict[str, Any]) -> str:
        user_agent = record.get("user-agent")
        if user_agent is None or user_agent == MISSING_VALUE_DATASET_TOKEN:
            user_agent = record.get("User-Agent")
        if user_agent is None or user_agent == MISSING_VALUE_DATASET_TOKEN:
            return ""
        return user_agent.lower()

    def derive(self, record: Dict[str, Any]) -> Dict[str, str]:
        """Derived columns for a reconciled header record"""
        user_agent = self.user_agent_of(record)
        browser = classify_browser_version(user_agent)
        device, operating_system = classify_device_os(user_agent)
        http_major = http_major_version(record.get(HTTP_VERSION_NODE_NAME))

        return {
            BROWSER_NODE_NAME: browser,
            OPERATING_SYSTEM_NODE_NAME: operating_system,
            DEVICE_NODE_NAME: device,
            BROWSER_HTTP_NODE_NAME: f"{browser}|{http_major}",
        }
