"""
Error taxonomy for the simulation core.
"""


class CityError(Exception):
    """Base class for every recoverable city-core error."""


class InvalidPlacement(CityError):
    """Bad coordinates, occupied tile, unplaceable type or insufficient funds. No state changed."""

    def __init__(self, message: str, x: int | None = None, y: int | None = None):
        super().__init__(message)
        self.x = x
        self.y = y


class CapacityExceeded(InvalidPlacement):
    """The catalog's max-allowed count for the building type is already reached."""


class NothingToDemolish(CityError):
    """Demolish requested on an empty tile."""

    def __init__(self, x: int, y: int):
        super().__init__(f"Nothing to demolish at ({x}, {y})")
        self.x = x
        self.y = y


class InvalidSimulationInput(CityError):
    """Non-finite or structurally broken stats reached the simulator boundary."""


class AdvisoryUnavailable(CityError):
    """The advisory service timed out, failed, or returned an unusable payload."""


class UnknownEvent(CityError):
    """Resolve requested for an event that is not the pending one."""

    def __init__(self, event_id: str):
        super().__init__(f"No pending event with id {event_id!r}")
        self.event_id = event_id


class InvalidChoice(CityError):
    """Choice index outside the event's two options."""

    def __init__(self, event_id: str, choice_index: int):
        super().__init__(f"Event {event_id!r} has no choice {choice_index}")
        self.event_id = event_id
        self.choice_index = choice_index


class InvalidSession(CityError):
    """A session payload failed validation and cannot be restored."""
