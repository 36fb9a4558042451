"""Typed failures raised by the curriculum tree engine."""


class CurriculumError(Exception):
    """Base class for every failure the engine reports to its callers."""


class NotFoundError(CurriculumError):
    pass


class UnitNotFound(NotFoundError):
    def __init__(self, unit_id: str):
        self.unit_id = unit_id
        super().__init__(f"Unit not found: {unit_id}")


class NodeNotFound(NotFoundError):
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")


class InvariantViolation(CurriculumError):
    """The edit would corrupt the shape of a unit's forest."""


class DuplicateId(InvariantViolation):
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Duplicate node id: {node_id}")


class CycleDetected(InvariantViolation):
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node {node_id} is reachable from itself")


class UnknownType(InvariantViolation):
    pass


class CannotDeleteRoot(CurriculumError):
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Cannot delete root node: {node_id}")


class PersistenceError(CurriculumError):
    """Storage failed or timed out."""
