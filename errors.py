"""Error types raised by the signup, cancellation and admin operations.

Routes turn any ``MealSignupError`` into ``{"error": message}`` with the
matching HTTP status, so messages must be safe to show to the public.
"""


class MealSignupError(Exception):
    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(MealSignupError):
    status_code = 400


class NotFoundError(MealSignupError):
    status_code = 404


class ConflictError(MealSignupError):
    status_code = 409


class AuthorizationError(MealSignupError):
    status_code = 401

    def __init__(self, message="Unauthorized"):
        super().__init__(message)


class StorageError(MealSignupError):
    status_code = 500


class NotificationError(MealSignupError):
    """Email transport failure. Logged by the dispatcher, never returned to a caller."""
