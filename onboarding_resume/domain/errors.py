class DomainError(Exception):
    """Base class for all domain-level errors."""

    pass


class TrackerNotResumable(DomainError):
    """The tracker is missing, terminated, or its resume window has closed."""

    pass


class ConcurrencyConflict(DomainError):
    """A concurrent writer won the race (serialization failure, deadlock).

    Safe to retry the whole unit of work.
    """

    pass


class InfrastructureError(DomainError):
    """Storage or transport failure unrelated to business rules."""

    def __init__(self, message: str, *, tracker_id: str | None = None) -> None:
        super().__init__(message)
        self.tracker_id = tracker_id

    def bind(self, tracker_id: str | None) -> "InfrastructureError":
        """Attach the tracker the failure happened for, keeping the first one set."""
        if self.tracker_id is None:
            self.tracker_id = tracker_id
        return self
