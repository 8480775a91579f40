class WorkflowError(Exception):
    """
    Base for every error the workflow reports to callers.
    `kind` and `status_code` map onto the HTTP-style categories.
    """
    kind = 'server_error'
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_dict(self):
        return {'error': self.message, 'kind': self.kind}


class Unauthorized(WorkflowError):
    kind = 'unauthorized'
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(WorkflowError):
    kind = 'forbidden'
    status_code = 403
    default_message = "You do not have permission to perform this action"


class NotFound(WorkflowError):
    kind = 'not_found'
    status_code = 404
    default_message = "Not found"


class InvalidTransition(WorkflowError):
    kind = 'invalid_transition'
    status_code = 400
    default_message = "Action is not allowed in the current status"


class ValidationError(WorkflowError):
    kind = 'validation'
    status_code = 400
    default_message = "Invalid input"


class ServerError(WorkflowError):
    pass
