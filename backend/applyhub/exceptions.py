"""Error taxonomy shared by the services and rendered by the HTTP layer."""


class ApplyHubError(Exception):
    status_code = 400
    error_code = "ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ApplyHubError):
    status_code = 404
    error_code = "NOT_FOUND"


class InvalidParameterError(ApplyHubError):
    status_code = 400
    error_code = "INVALID_PARAMETER"


class ForbiddenError(ApplyHubError):
    status_code = 403
    error_code = "FORBIDDEN"


class OperationNotAllowedError(ApplyHubError):
    status_code = 409
    error_code = "OPERATION_NOT_ALLOWED"


class UnsupportedError(ApplyHubError):
    status_code = 400
    error_code = "UNSUPPORTED"


class UploadError(ApplyHubError):
    error_code = "UPLOAD_ERROR"

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code
