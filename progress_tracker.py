import os
import json
import logging
import tempfile
import threading
from typing import Dict, Any, Set, Tuple
from datetime import datetime

from errors import PersistenceError

logger = logging.getLogger(__name__)


class ProgressTracker:
    """Per-learner completion records, one JSON file per learner and unit.

    Updates to one record are serialized; files are replaced atomically so a
    reader never sees a partly written record.
    """

    def __init__(self, storage_dir: str = "progress"):
        self.storage_dir = storage_dir
        self._locks: Dict[Tuple[str, str], threading.RLock] = {}
        self._registry_lock = threading.Lock()
        self._ensure_storage_dir()

    def _ensure_storage_dir(self):
        """Ensure the storage directory exists"""
        if not os.path.exists(self.storage_dir):
            os.makedirs(self.storage_dir)

    def _get_progress_file(self, learner_id: str, unit_id: str) -> str:
        """Get the progress file path for a learner and unit"""
        for part in (learner_id, unit_id):
            if not part or os.path.basename(part) != part or part.startswith('.'):
                raise ValueError(f"Invalid progress key: {part!r}")
        return os.path.join(self.storage_dir, f"{learner_id}_{unit_id}_progress.json")

    def _lock_for(self, learner_id: str, unit_id: str) -> threading.RLock:
        self._get_progress_file(learner_id, unit_id)
        with self._registry_lock:
            key = (learner_id, unit_id)
            if key not in self._locks:
                self._locks[key] = threading.RLock()
            return self._locks[key]

    def _new_progress(self, learner_id: str, unit_id: str) -> Dict[str, Any]:
        return {
            'learner_id': learner_id,
            'unit_id': unit_id,
            'completed_lessons': [],
            'last_updated': datetime.now().isoformat()
        }

    def save_progress(self, learner_id: str, unit_id: str, progress_data: Dict[str, Any]) -> None:
        """Save progress data for a learner"""
        file_path = self._get_progress_file(learner_id, unit_id)
        progress_data['last_updated'] = datetime.now().isoformat()

        with self._lock_for(learner_id, unit_id):
            fd, tmp_path = tempfile.mkstemp(dir=self.storage_dir, suffix='.tmp')
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(progress_data, f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, file_path)
            except OSError as e:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                logger.error(f"Error saving progress: {str(e)}")
                raise PersistenceError(f"Progress could not be saved: {str(e)}") from e

        logger.info(f"Progress saved for learner {learner_id} in unit {unit_id}")

    def load_progress(self, learner_id: str, unit_id: str) -> Dict[str, Any]:
        """Load progress data for a learner; a learner with no record has completed nothing"""
        file_path = self._get_progress_file(learner_id, unit_id)
        if not os.path.exists(file_path):
            return self._new_progress(learner_id, unit_id)

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                progress_data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading progress: {str(e)}")
            raise PersistenceError(f"Progress could not be read: {str(e)}") from e

        logger.info(f"Progress loaded for learner {learner_id} in unit {unit_id}")
        return progress_data

    def load_completed(self, learner_id: str, unit_id: str) -> Set[str]:
        """Ids of the nodes the learner has completed in the unit"""
        return set(self.load_progress(learner_id, unit_id).get('completed_lessons', []))

    def mark_completed(self, learner_id: str, unit_id: str, node_id: str) -> Dict[str, Any]:
        """Record a completed node"""
        with self._lock_for(learner_id, unit_id):
            progress_data = self.load_progress(learner_id, unit_id)

            if node_id not in progress_data['completed_lessons']:
                progress_data['completed_lessons'].append(node_id)

            self.save_progress(learner_id, unit_id, progress_data)
        return progress_data

    def reset_progress(self, learner_id: str, unit_id: str) -> Dict[str, Any]:
        """Forget everything the learner completed in the unit"""
        with self._lock_for(learner_id, unit_id):
            progress_data = self._new_progress(learner_id, unit_id)
            self.save_progress(learner_id, unit_id, progress_data)
        return progress_data
