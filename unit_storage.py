import os
import json
import logging
import tempfile
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Any, Iterator, List, Optional

from pydantic import ValidationError

from errors import PersistenceError, UnitNotFound
from models import ContentNode, Unit, validate_forest
from tree_locator import iter_nodes

logger = logging.getLogger(__name__)


class UnitStorage:
    """One JSON document per unit, with mutations serialized per unit id.

    Writers hold the unit's lock from load to save (see ``transaction``).
    Readers take no lock; files are replaced atomically so a reader sees
    either the previous or the new document.
    """

    def __init__(self, storage_dir: str = "units", lock_timeout: float = 5.0):
        self.storage_dir = storage_dir
        self.lock_timeout = lock_timeout
        self._locks: Dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()
        self._ensure_storage_dir()

    def _ensure_storage_dir(self):
        """Ensure the storage directory exists"""
        if not os.path.exists(self.storage_dir):
            os.makedirs(self.storage_dir)

    def _get_unit_file(self, unit_id: str) -> str:
        """Get the file path for a unit"""
        if not unit_id or os.path.basename(unit_id) != unit_id or unit_id.startswith('.'):
            raise UnitNotFound(unit_id)
        return os.path.join(self.storage_dir, f"{unit_id}.json")

    def _lock_for(self, unit_id: str) -> threading.RLock:
        with self._registry_lock:
            if unit_id not in self._locks:
                self._locks[unit_id] = threading.RLock()
            return self._locks[unit_id]

    @contextmanager
    def transaction(self, unit_id: str, must_exist: bool = True) -> Iterator[None]:
        """Hold the unit's mutation lock for a whole read-modify-write.

        Locks are only created for stored units (or, with ``must_exist``
        off, for a unit being created), so unknown ids leave no trace.
        """
        file_path = self._get_unit_file(unit_id)
        if must_exist and not os.path.exists(file_path):
            raise UnitNotFound(unit_id)
        lock = self._lock_for(unit_id)
        if not lock.acquire(timeout=self.lock_timeout):
            logger.warning(f"Timed out waiting for unit {unit_id}, retrying once")
            if not lock.acquire(timeout=self.lock_timeout):
                logger.error(f"Could not lock unit {unit_id} after retry")
                raise PersistenceError(f"Timed out waiting for unit {unit_id}")
        try:
            yield
        finally:
            lock.release()

    def exists(self, unit_id: str) -> bool:
        try:
            return os.path.exists(self._get_unit_file(unit_id))
        except UnitNotFound:
            return False

    def load_unit(self, unit_id: str) -> Unit:
        """Load a unit by ID"""
        file_path = self._get_unit_file(unit_id)
        if not os.path.exists(file_path):
            raise UnitNotFound(unit_id)

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                unit_data = json.load(f)
            unit = Unit.model_validate(unit_data)
        except FileNotFoundError:
            raise UnitNotFound(unit_id)
        except (OSError, ValueError, ValidationError) as e:
            logger.error(f"Error loading unit {unit_id}: {str(e)}")
            raise PersistenceError(f"Unit {unit_id} could not be read: {str(e)}") from e

        logger.info(f"Unit loaded successfully: {unit_id}")
        return unit

    def load(self, unit_id: str) -> List[ContentNode]:
        """Load the forest of a unit"""
        return self.load_unit(unit_id).data

    def save(self, unit_id: str, forest: List[ContentNode]) -> None:
        """Replace the forest of an existing unit"""
        with self.transaction(unit_id):
            unit = self.load_unit(unit_id)
            self._write(unit_id, unit.model_copy(update={'data': forest}))
        logger.info(f"Unit saved successfully: {unit_id}")

    def create_unit(self, title: str, data: Optional[List[ContentNode]] = None,
                    unit_id: Optional[str] = None) -> Unit:
        """Create a new unit and return it"""
        unit = Unit(id=unit_id or uuid.uuid4().hex, title=title, data=data or [])
        validate_forest(unit.data)

        with self.transaction(unit.id, must_exist=False):
            if os.path.exists(self._get_unit_file(unit.id)):
                raise ValueError(f"Unit already exists: {unit.id}")
            self._write(unit.id, unit)

        logger.info(f"Unit created successfully: {unit.id}")
        return unit

    def list_units(self) -> Dict[str, Dict[str, Any]]:
        """List all available units with their basic info"""
        units = {}
        for file_name in sorted(os.listdir(self.storage_dir)):
            if file_name.endswith('.json'):
                unit_id = file_name[:-5]  # Remove .json extension
                try:
                    unit = self.load_unit(unit_id)
                    units[unit_id] = {
                        'title': unit.title,
                        'nodes': sum(1 for _ in iter_nodes(unit.data)),
                    }
                except PersistenceError as e:
                    logger.error(f"Error loading unit {unit_id}: {str(e)}")
        return units

    def _write(self, unit_id: str, unit: Unit) -> None:
        unit_data = unit.model_dump(mode='json')
        unit_data['updated_at'] = datetime.now().isoformat()
        file_path = self._get_unit_file(unit_id)

        for attempt in (1, 2):
            try:
                self._replace_file(file_path, unit_data)
                return
            except OSError as e:
                if attempt == 1:
                    logger.warning(f"Error writing unit {unit_id}, retrying: {str(e)}")
                    continue
                logger.error(f"Error writing unit {unit_id}: {str(e)}")
                raise PersistenceError(f"Unit {unit_id} could not be written: {str(e)}") from e

    def _replace_file(self, file_path: str, unit_data: Dict[str, Any]) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=self.storage_dir, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(unit_data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, file_path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
