# projects/exceptions.py
"""
Domain errors raised by the project lifecycle engine.

Views never catch these; core.exceptions.custom_exception_handler turns
them into HTTP responses using `status_code`.
"""


class LifecycleError(Exception):
    status_code = 400
    default_detail = "Project operation failed."

    def __init__(self, detail=None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def as_dict(self) -> dict:
        return {"detail": self.detail}


class ValidationError(LifecycleError):
    default_detail = "Invalid input."

    def __init__(self, detail=None, field=None):
        self.field = field
        super().__init__(detail)

    def as_dict(self) -> dict:
        if self.field:
            return {self.field: [self.detail]}
        return super().as_dict()


class InvalidTransition(LifecycleError):
    status_code = 409

    def __init__(self, current_status, transition, detail=None):
        self.current_status = str(current_status)
        self.transition = str(transition)
        super().__init__(
            detail or f"Cannot {self.transition} a project in status '{self.current_status}'"
        )

    def as_dict(self) -> dict:
        return {
            "detail": self.detail,
            "current_status": self.current_status,
            "transition": self.transition,
        }


class NotFound(LifecycleError):
    status_code = 404
    default_detail = "Not found."


class NotAllowed(LifecycleError):
    status_code = 403
    default_detail = "You are not allowed to perform this action."


class DuplicateRating(LifecycleError):
    status_code = 409
    default_detail = "This project has already been rated."


class StorageError(LifecycleError):
    status_code = 503
    default_detail = "Storage operation failed, please try again."

    def __init__(self, operation, project_id=None, cause=None):
        self.operation = operation
        self.project_id = project_id
        self.cause = cause
        detail = f"{operation} failed"
        if project_id is not None:
            detail += f" for project {project_id}"
        if cause is not None:
            detail += f": {cause}"
        super().__init__(detail)

    def as_dict(self) -> dict:
        # Internal cause stays in the logs
        return {"detail": self.default_detail, "operation": self.operation}
