class FSRSError(Exception):
    """Base exception for FSRS module."""
    pass

class InvalidStepConfigError(FSRSError, ValueError):
    """Raised when a deck's learning or relearning steps are empty or malformed."""
    pass

class DomainViolationError(FSRSError, ValueError):
    """Raised when a card's memory state holds values outside their domain."""
    pass

class InvalidRatingError(FSRSError):
    """Raised when the provided rating is not valid (must be 1-4)."""
    pass

class EngineCalculationError(FSRSError):
    """Raised when FSRS engine fails to calculate next states."""
    pass
