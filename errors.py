"""
Console error taxonomy.
Every error carries a user-facing message and the HTTP status the routers
answer with when they convert it into an HTTPException.
"""

from typing import Optional


class ConsoleError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ConsoleError):
    """A draft is missing a required field or carries an invalid value."""
    status_code = 400


class EmptyImportError(ConsoleError):
    status_code = 400

    def __init__(self, message: str = "No valid rows found in CSV"):
        super().__init__(message)


class NotFoundError(ConsoleError):
    status_code = 404


class BackendError(ConsoleError):
    """Network or API failure while talking to the CBT backend."""
    status_code = 502

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ActionInProgressError(ConsoleError):
    status_code = 409

    def __init__(self, action: str):
        super().__init__(f"'{action}' is already in progress, please wait")
        self.action = action
