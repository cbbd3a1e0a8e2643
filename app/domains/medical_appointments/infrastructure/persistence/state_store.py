# ============================================================================
# SCOPE: INFRASTRUCTURE LAYER (Medical Appointments)
# Description: JSON file store for the orchestration state snapshot.
# ============================================================================
"""State Store.

Writes the PersistedSnapshot atomically (temp file in the same directory, then
rename) so a crash mid-write never leaves a truncated state file behind.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from app.core.domain import StateStoreError

from ...domain.entities.orchestration_state import OrchestrationState, PersistedSnapshot

logger = logging.getLogger(__name__)


class JsonStateStore:
    """Persistencia del estado en un archivo JSON."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.last_saved_at: float | None = None

    def load(self) -> OrchestrationState:
        """
        Load the last snapshot.

        A missing file yields an empty state. An unreadable or invalid file is
        logged and also yields an empty state, so the process can still start.
        """
        if not self.path.exists():
            logger.info(f"No state file at {self.path}, starting with empty state")
            return OrchestrationState()

        try:
            with self.path.open(encoding="utf-8") as f:
                data = json.load(f)
            snapshot = PersistedSnapshot.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Failed to read state file {self.path}: {e}")
            return OrchestrationState()

        state = OrchestrationState.from_snapshot(snapshot)
        logger.info(f"State loaded from {self.path}: {state.summary()}")
        return state

    def save(self, state: OrchestrationState) -> None:
        """
        Write the snapshot atomically.

        Raises:
            StateStoreError: If the file cannot be written.
        """
        payload = state.to_snapshot().model_dump(mode="json")
        directory = self.path.parent
        tmp_name: str | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", delete=False, dir=directory, suffix=".tmp", encoding="utf-8"
            ) as f:
                tmp_name = f.name
                json.dump(payload, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise StateStoreError(str(self.path), f"Failed to persist state: {e}") from e
        finally:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        self.last_saved_at = os.path.getmtime(self.path)
        logger.debug(f"State persisted to {self.path}")
