"""
Error kinds raised by the task tracker core.

Routers never catch these; ``tasktracker.main`` maps each kind to an HTTP
status in one place.
"""


class TaskTrackerError(Exception):
    """Base class for every error the core raises on purpose."""


class ValidationError(TaskTrackerError):
    """One or more field values were rejected.

    ``reasons`` keeps every rejection of the request, in the order the
    rules were checked.
    """

    def __init__(self, reasons: list[str] | str):
        if isinstance(reasons, str):
            reasons = [reasons]
        self.reasons = list(reasons)
        super().__init__("; ".join(self.reasons))


class NotFoundError(TaskTrackerError):
    def __init__(self, entity: str, entity_id: int):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ConflictError(TaskTrackerError):
    """The row changed under us, or a unique value is already taken."""
