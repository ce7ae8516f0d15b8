class TimetableError(Exception):
    """Base class for timetable engine errors."""


class ValidationError(TimetableError):
    """Malformed or missing request field. Fatal: no timetable is produced."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")

    def to_dict(self):
        return {"field": self.field, "message": self.message}


class SolverError(TimetableError, RuntimeError):
    """CP-SAT could not produce a usable assignment."""


class EmptyRosterWarning(UserWarning):
    """Rosters too thin to fill some (or all) slots. Not an error."""
