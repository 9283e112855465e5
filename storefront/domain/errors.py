class StorefrontError(Exception):
    """Base for failures reported back to the caller as a message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StorefrontError):
    pass


class NotFoundError(StorefrontError):
    pass


class CapacityError(StorefrontError):
    """Not enough seats left on an event."""


class ConflictError(StorefrontError):
    """A concurrent writer won; the caller may retry."""
