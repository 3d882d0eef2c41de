from typing import Dict, Optional


class FormBuilderError(Exception):
    """Base class for errors translated into HTTP responses by main.py"""

    status_code = 500
    message = "Unexpected error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class NotFoundError(FormBuilderError):
    status_code = 404

    def __init__(self, what: str = "Resource"):
        super().__init__(f"{what} not found")
        self.what = what


class FormValidationError(FormBuilderError):
    status_code = 422
    message = "Please correct the highlighted fields"

    def __init__(self, errors: Dict[int, dict]):
        super().__init__()
        self.errors = errors


class BackendError(FormBuilderError):
    status_code = 500
    message = "Backend request failed"


class BackendUnavailable(BackendError):
    status_code = 503
    message = "Service temporarily unavailable, please try again"


class ConflictError(FormBuilderError):
    status_code = 409
    message = "Conflicting record"


class PartialWriteFailure(FormBuilderError):
    """The first of two sequential writes committed, the second did not"""

    status_code = 500

    def __init__(self, saved: str, failed: str, saved_id: Optional[int] = None):
        super().__init__(f"{saved} saved, {failed} failed")
        self.saved = saved
        self.failed = failed
        self.saved_id = saved_id


class ConfirmationRequired(FormBuilderError):
    status_code = 400

    def __init__(self, action: str):
        super().__init__(f"Confirmation required to {action}: repeat the request with confirm=true")
        self.action = action


class LoginRequired(FormBuilderError):
    """Admin route reached without a session; answered with a redirect to the login route"""

    status_code = 303

    def __init__(self, requested_path: str):
        super().__init__("Login required")
        self.requested_path = requested_path
