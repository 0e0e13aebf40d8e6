"""Shared exceptions for service layer operations."""


class UserValidationError(Exception):
    """
    Raised by UserStore when a user is missing a required field.

    Required fields are first_name, last_name and gender. Blank strings count
    as missing. Nothing is written when this is raised.
    """

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"User's {field.replace('_', ' ')} cannot be empty.")


class NullInputError(ValueError):
    """
    Raised when a mutating or lookup operation receives None instead of a
    user, an id, or a collection of them.
    """

    def __init__(self, argument: str) -> None:
        self.argument = argument
        super().__init__(f"{argument} cannot be None.")
