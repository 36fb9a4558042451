import os
import sys
import tempfile
from itertools import count
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# app.py builds its storage on import; keep it out of the working tree
_SCRATCH = Path(tempfile.mkdtemp(prefix="curriculum-tests-"))
os.environ.setdefault("CURRICULUM_UNITS_DIR", str(_SCRATCH / "units"))
os.environ.setdefault("CURRICULUM_PROGRESS_DIR", str(_SCRATCH / "progress"))

from models import ContentNode  # noqa: E402
from progress_tracker import ProgressTracker  # noqa: E402
from tree_editor import CurriculumEditor  # noqa: E402
from unit_storage import UnitStorage  # noqa: E402


def make_node(node_id, children=None, node_type="lesson", **extra):
    return ContentNode(
        id=node_id,
        type=node_type,
        title=extra.pop("title", f"Node {node_id}"),
        children=children or [],
        **extra,
    )


@pytest.fixture
def forest():
    """
    A
    ├── B (quiz)
    │   └── D (video)
    └── C
    E
    """
    return [
        make_node("A", [
            make_node("B", [make_node("D", node_type="video")], node_type="quiz", subtype="TrueFalse"),
            make_node("C"),
        ]),
        make_node("E"),
    ]


@pytest.fixture
def storage(tmp_path):
    return UnitStorage(str(tmp_path / "units"), lock_timeout=0.5)


@pytest.fixture
def tracker(tmp_path):
    return ProgressTracker(str(tmp_path / "progress"))


@pytest.fixture
def unit(storage, forest):
    return storage.create_unit("Fractions", forest, unit_id="unit1")


@pytest.fixture
def sequential_ids():
    counter = count(1)
    return lambda: f"n{next(counter)}"


@pytest.fixture
def editor(storage, sequential_ids):
    return CurriculumEditor(storage, id_factory=sequential_ids)


def ids(nodes):
    return [node.id for node in nodes]
