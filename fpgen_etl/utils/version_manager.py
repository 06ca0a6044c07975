"""
Run registry for network builds
Every invocation gets a version ID; each build stage records its outputs,
statistics and failures under that version in versions.json
"""

import json
import logging
import os
import socket
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class VersionManager:
    """Track build runs and their per-stage metadata"""

    def __init__(self, versions_file: Path = Path("versions.json")):
        self.versions_file = Path(versions_file)
        self.versions_data = self._load_versions()

    def _load_versions(self) -> Dict[str, Any]:
        if not self.versions_file.exists():
            return {"versions": [], "current": None, "schema_version": "1.0"}

        with open(self.versions_file) as f:
            return json.load(f)

    def _save_versions(self):
        with open(self.versions_file, "w") as f:
            json.dump(self.versions_data, f, indent=2)
        logger.debug(f"Updated {self.versions_file}")

    def create_version_id(self) -> str:
        """Timestamp plus sanitized hostname"""
        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        hostname = socket.gethostname().replace(" ", "-").lower()
        hostname = "".join(c for c in hostname if c.isalnum() or c in "-_")
        return f"{timestamp}_{hostname}"

    def register_version(self, version_id: str, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        entry = {
            "version_id": version_id,
            "created_at": datetime.now().isoformat(),
            "created_by": socket.gethostname(),
            "user": os.getenv("USER", "unknown"),
            "stages": {},
            "metadata": metadata or {},
            "status": "in_progress",
        }

        # Most recent first
        self.versions_data["versions"].insert(0, entry)
        self.versions_data["current"] = version_id
        self._save_versions()

        logger.info(f"Registered version: {version_id}")
        return entry

    def get_version(self, version_id: str) -> Optional[Dict[str, Any]]:
        if version_id in ("current", "latest"):
            version_id = self.get_current_version_id()

        for version in self.versions_data["versions"]:
            if version["version_id"] == version_id:
                return version
        return None

    def get_current_version_id(self) -> Optional[str]:
        if self.versions_data["current"]:
            return self.versions_data["current"]
        if self.versions_data["versions"]:
            return self.versions_data["versions"][0]["version_id"]
        return None

    def update_stage_info(self, version_id: str, stage: str, info: Dict[str, Any]):
        """Record outputs/stats (or the failure) of one build stage"""
        version = self.get_version(version_id)
        if not version:
            raise ValueError(f"Version {version_id} not found")

        version["stages"][stage] = {**info, "updated_at": datetime.now().isoformat()}
        self._save_versions()
        logger.debug(f"Updated stage '{stage}' for version {version_id}")

    def mark_version_complete(self, version_id: str, summary: Optional[Dict[str, Any]] = None):
        version = self.get_version(version_id)
        if not version:
            raise ValueError(f"Version {version_id} not found")

        version["status"] = "complete"
        version["completed_at"] = datetime.now().isoformat()
        if summary:
            version["summary"] = summary
        self._save_versions()
        logger.info(f"Marked version {version_id} as complete")

    def list_versions(self, limit: int = 10, status: Optional[str] = None) -> List[Dict[str, Any]]:
        versions = self.versions_data["versions"]
        if status:
            versions = [v for v in versions if v.get("status") == status]
        return versions[:limit]
