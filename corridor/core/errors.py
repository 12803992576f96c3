class DispatchError(Exception):
    """Base class for dispatch failures."""


class InvalidInput(DispatchError, ValueError):
    """Raised at the boundary for malformed trains, layouts or config values."""


class NoFeasibleSlot(DispatchError):
    def __init__(self, train_id: str, horizon_minutes: int):
        self.train_id = train_id
        self.horizon_minutes = horizon_minutes
        super().__init__(f"No feasible slot for train {train_id} within {horizon_minutes} minutes of its scheduled departure")
