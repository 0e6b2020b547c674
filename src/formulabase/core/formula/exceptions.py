"""Exceptions for formula parsing."""

class FormulaError(Exception):
    """Base class for all formula-related errors."""
    pass

class FormulaParseError(FormulaError):
    """Raised when formula text cannot be turned into a node store."""
    def __init__(self, message: str, position: int | None = None):
        self.position = position
        super().__init__(f"{message} at position {position}" if position is not None else message)
