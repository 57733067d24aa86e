"""State persistence for records of managed resources."""
import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from zstate.core.logger import get_logger

logger = get_logger(__name__)

STATE_VERSION = "1.0"


def address(kind: str, name: str) -> str:
    """Key of a record in the state file, e.g. 'filesystem.tank/data'."""
    return f"{kind}.{name}"


class StateStore:
    """Track the last known record of every resource zstate manages.

    The stored record is the "old" side of an update: property removals are
    computed against what was declared last time, not against the host.
    """

    def __init__(self, state_file: Optional[Path] = None):
        """Initialize state store.

        Args:
            state_file: Path to state file. Defaults to .zstate/state.json
        """
        if state_file is None:
            state_file = Path.cwd() / ".zstate" / "state.json"

        self.state_file = Path(state_file)
        self.enabled = not os.environ.get('ZSTATE_STATELESS')
        self.state = self._load()

    def _load(self) -> dict:
        if not self.state_file.exists():
            return self._empty_state()

        try:
            with open(self.state_file, 'r') as f:
                state = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Failed to load state file: {e}, using empty state")
            return self._empty_state()

        if not isinstance(state, dict) or not isinstance(state.get("resources"), dict):
            logger.warning(f"State file {self.state_file} has no resources section, using empty state")
            return self._empty_state()

        logger.debug(f"Loaded state from {self.state_file}")
        return state

    def _empty_state(self) -> dict:
        now = datetime.now().isoformat()
        return {
            "version": STATE_VERSION,
            "created_at": now,
            "updated_at": now,
            "resources": {},
        }

    def save(self) -> bool:
        """Save state to file.

        Returns:
            True if saved successfully
        """
        if not self.enabled:
            logger.debug("State tracking disabled (ZSTATE_STATELESS)")
            return False

        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            self.state["updated_at"] = datetime.now().isoformat()

            # Write atomically (write to temp, then rename)
            temp_file = self.state_file.with_suffix('.tmp')
            with open(temp_file, 'w') as f:
                json.dump(self.state, f, indent=2)

            temp_file.replace(self.state_file)
            logger.debug(f"Saved state to {self.state_file}")
            return True

        except (IOError, OSError) as e:
            logger.error(f"Failed to save state: {e}")
            return False

    def get(self, kind: str, name: str) -> Optional[Dict[str, Any]]:
        return self.state["resources"].get(address(kind, name))

    def put(self, kind: str, name: str, record: Dict[str, Any], previous_name: Optional[str] = None) -> None:
        """Store `record`, dropping the entry under `previous_name` after a rename."""
        if previous_name is not None and previous_name != name:
            self.state["resources"].pop(address(kind, previous_name), None)
        self.state["resources"][address(kind, name)] = record
        self.save()

    def remove(self, kind: str, name: str) -> bool:
        removed = self.state["resources"].pop(address(kind, name), None) is not None
        if removed:
            self.save()
        return removed

    def find_by_id(self, kind: str, guid: str) -> Optional[Dict[str, Any]]:
        """Record of `kind` whose id is `guid`, wherever it is stored."""
        prefix = f"{kind}."
        for key, record in self.state["resources"].items():
            if key.startswith(prefix) and record.get("id") == guid:
                return record
        return None

    def addresses(self, kind: Optional[str] = None) -> List[str]:
        keys = sorted(self.state["resources"])
        if kind is None:
            return keys
        return [key for key in keys if key.startswith(f"{kind}.")]
