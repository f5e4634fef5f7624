import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ReportManager:
    """
    Manages storage/retrieval of audit run reports.
    Each report is one JSON file: <base_dir>/<name>_<UTC timestamp>.json
    """

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)

    def save_report(self, name: str, data: Dict[str, Any]) -> Optional[Path]:
        """Writes a report and returns its path, or None when it could not be written."""
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        path = self.base_dir / f"{name}_{stamp}.json"
        payload = {
            "name": name,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "data": data,
        }
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
        except (OSError, TypeError) as e:
            logger.error(f"Failed to save report '{name}': {e}")
            return None

        logger.info(f"Report '{name}' saved to {path}")
        return path

    def get_latest_report(self, name: str) -> Optional[Dict[str, Any]]:
        """Loads the most recent report with the given name, or None."""
        if not self.base_dir.is_dir():
            return None

        # The timestamp suffix sorts lexicographically in time order.
        candidates = sorted(self.base_dir.glob(f"{name}_*.json"))
        if not candidates:
            return None

        try:
            with open(candidates[-1], "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read report {candidates[-1]}: {e}")
            return None
