"""JSON storage for world model snapshots."""

import json
import logging
from datetime import datetime
from typing import Any, Dict

logger = logging.getLogger(__name__)


def _default(value: Any):
    if isinstance(value, datetime):
        return value.isoformat()
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class JSONStorage:
    """Save and load world model snapshots as JSON."""

    @staticmethod
    def save(snapshot: Dict, filepath: str):
        """
        Save a snapshot (``WorldModelStore.export_domain``) to a JSON file.

        Args:
            snapshot: The world model data
            filepath: Path to save the file
        """
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(snapshot, f, indent=2, ensure_ascii=False, default=_default)

        logger.info("Saved world model snapshot to %s", filepath)

    @staticmethod
    def load(filepath: str) -> Dict:
        """
        Load a snapshot from a JSON file.

        Args:
            filepath: Path to the JSON file

        Returns:
            Snapshot data
        """
        with open(filepath, 'r', encoding='utf-8') as f:
            return json.load(f)
