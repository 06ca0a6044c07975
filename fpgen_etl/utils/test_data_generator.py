"""
Test data generator for builds and integration tests
Creates capture records and empty network structure files
"""

import json
import random
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from fpgen_etl.utils.bayesian_network import NETWORK_DEFINITION_ENTRY

DESKTOP_CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/114.0.0.0 Safari/537.36"
)
DESKTOP_FIREFOX_UA = (
    "Mozilla/5.0 (X11; Linux x86_64; rv:109.0) Gecko/20100101 Firefox/115.0"
)
MAC_SAFARI_UA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.5 Safari/605.1.15"
)
IPHONE_SAFARI_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 16_5 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.5 Mobile/15E148 Safari/604.1"
)
ANDROID_CHROME_UA = (
    "Mozilla/5.0 (Linux; Android 13; Pixel 7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/114.0.0.0 Mobile Safari/537.36"
)
GOOGLEBOT_UA = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"

DESKTOP_SCREENS = [(1920, 1080), (2560, 1440), (1366, 768), (1536, 864)]
MOBILE_SCREENS = [(375, 812), (390, 844), (412, 915)]

FINGERPRINT_ATTRIBUTES = [
    "userAgent", "screen", "languages", "platform", "deviceMemory",
    "hardwareConcurrency", "pluginsData", "webdriver",
]
HEADER_ATTRIBUTES = [
    "user-agent", "User-Agent", "accept", "Accept", "accept-language",
    "Accept-Language", "*HTTP_VERSION",
]
INPUT_ATTRIBUTES = ["*BROWSER", "*OPERATING_SYSTEM", "*DEVICE", "*HTTP_VERSION", "*BROWSER_HTTP"]


def make_capture_record(
    user_agent: str,
    width: int,
    height: int,
    http_version: str = "2",
    header_user_agent: Optional[str] = None,
    extra_fingerprint: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """One capture record; headers use lowercase names for HTTP/2 like browsers do"""
    header_user_agent = user_agent if header_user_agent is None else header_user_agent
    if http_version.startswith("1"):
        headers = {
            "User-Agent": header_user_agent,
            "Accept": "text/html,application/xhtml+xml",
            "Accept-Language": "en-US,en;q=0.9",
        }
    else:
        headers = {
            "user-agent": header_user_agent,
            "accept": "text/html,application/xhtml+xml",
            "accept-language": "en-US,en;q=0.9",
        }

    fingerprint = {
        "userAgent": user_agent,
        "screen": {"width": width, "height": height, "colorDepth": 24},
        "languages": ["en-US", "en"],
        "platform": "Win32",
        "deviceMemory": 8,
        "hardwareConcurrency": 8,
        "plugins": [{"name": "PDF Viewer", "filename": "internal-pdf-viewer"}],
        "mimeTypes": ["application/pdf"],
        "webdriver": False,
    }
    fingerprint.update(extra_fingerprint or {})

    return {
        "requestFingerprint": {"headers": headers, "httpVersion": http_version},
        "browserFingerprint": fingerprint,
    }


def create_network_structure(
    path: Path, node_names: Sequence[str], parents: Optional[Dict[str, List[str]]] = None
) -> Path:
    """Write an untrained network structure zip"""
    parents = parents or {}
    definition = {
        "nodes": [
            {
                "name": name,
                "parentNames": parents.get(name, []),
                "possibleValues": [],
                "conditionalProbabilities": {},
            }
            for name in node_names
        ]
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr(NETWORK_DEFINITION_ENTRY, json.dumps(definition))
    return path


def create_network_structures(structures_dir: Path) -> Dict[str, Path]:
    """The three structure files the builds expect"""
    return {
        "input": create_network_structure(
            structures_dir / "input-network-structure.zip",
            INPUT_ATTRIBUTES,
            {"*BROWSER_HTTP": ["*BROWSER", "*HTTP_VERSION"], "*DEVICE": ["*OPERATING_SYSTEM"]},
        ),
        "headers": create_network_structure(
            structures_dir / "header-network-structure.zip",
            HEADER_ATTRIBUTES + ["*BROWSER_HTTP"],
            {"user-agent": ["*BROWSER_HTTP"], "User-Agent": ["*BROWSER_HTTP"]},
        ),
        "fingerprints": create_network_structure(
            structures_dir / "fingerprint-network-structure.zip",
            FINGERPRINT_ATTRIBUTES,
            {"screen": ["userAgent"]},
        ),
    }


class FakeCaptureGenerator:
    """Generate capture datasets for pipeline testing"""

    def __init__(self, seed: Optional[int] = None):
        self.random = random.Random(seed)

    def desktop_record(self) -> Dict[str, Any]:
        width, height = self.random.choice(DESKTOP_SCREENS)
        user_agent = self.random.choice([DESKTOP_CHROME_UA, DESKTOP_FIREFOX_UA, MAC_SAFARI_UA])
        http_version = self.random.choice(["1.1", "2"])
        return make_capture_record(user_agent, width, height, http_version)

    def mobile_record(self) -> Dict[str, Any]:
        width, height = self.random.choice(MOBILE_SCREENS)
        user_agent = self.random.choice([IPHONE_SAFARI_UA, ANDROID_CHROME_UA])
        return make_capture_record(
            user_agent, width, height, "2",
            extra_fingerprint={"platform": "iPhone", "plugins": [], "mimeTypes": []},
        )

    def robot_record(self) -> Dict[str, Any]:
        return make_capture_record(GOOGLEBOT_UA, 1920, 1080)

    def mismatched_record(self) -> Dict[str, Any]:
        return make_capture_record(
            DESKTOP_CHROME_UA, 1920, 1080, header_user_agent=DESKTOP_FIREFOX_UA
        )

    def generate_dataset(self, num_records: int = 100, noise_ratio: float = 0.2) -> List[Dict[str, Any]]:
        """Mostly valid desktop/mobile captures with some robots and mismatches"""
        records = []
        for _ in range(num_records):
            roll = self.random.random()
            if roll < noise_ratio / 2:
                records.append(self.robot_record())
            elif roll < noise_ratio:
                records.append(self.mismatched_record())
            elif roll < noise_ratio + (1 - noise_ratio) * 0.3:
                records.append(self.mobile_record())
            else:
                records.append(self.desktop_record())
        return records

    def write_dataset(self, path: Path, records: List[Dict[str, Any]]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(records, f)
        return path
