"""Domain errors raised by the phone normalizer, the repository, the
notification sender and the assignment workflow."""
from typing import List, Optional


class InvalidPhoneNumber(ValueError):
    pass


class MissingPhoneError(ValueError):
    pass


class NotificationDeliveryError(Exception):
    """The messaging provider did not accept a message.

    ``status_code`` is None when the request never got a response.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class RepositoryError(Exception):
    pass


class WorkflowError(Exception):
    pass


class NeedsConfirmation(WorkflowError):
    """Active progress exists and the operator has not confirmed the overwrite."""

    def __init__(self, learner_id, course_names: List[str]):
        self.learner_id = learner_id
        self.course_names = list(course_names)
        names = ", ".join(f'"{n}"' for n in self.course_names)
        super().__init__(f"Learner {learner_id} already has an active course: {names}")


class AssignmentFailed(WorkflowError):
    def __init__(self, stage: str, cause: Exception):
        self.stage = stage
        self.cause = cause
        super().__init__(str(cause) or cause.__class__.__name__)
