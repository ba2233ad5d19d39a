"""Error taxonomy shared by the service layer and mapped to HTTP codes by the routers."""

from typing import List, Optional


class CargoError(Exception):
    """Base exception for cargo service errors."""

    pass


class RecordNotFoundError(CargoError):
    """Raised when a requested record id does not exist."""

    def __init__(self, entity: str, record_id: str) -> None:
        super().__init__(f"{entity} not found: {record_id}")
        self.entity = entity
        self.record_id = record_id


class ValidationFailure(CargoError):
    """Raised when caller-supplied data violates a precondition. Nothing is written."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class ConcurrencyConflict(CargoError):
    """Raised inside counter issuance when a concurrent write won the race."""

    pass


class PartialFailureError(CargoError):
    """Raised when a multi-step operation stopped partway. Completed steps are not rolled back."""

    def __init__(self, message: str, completed_ids: List[str], failed_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.completed_ids = completed_ids
        self.failed_id = failed_id
