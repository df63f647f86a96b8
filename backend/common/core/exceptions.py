class AppException(Exception):
    """Base application exception."""

    pass


class ConfigurationError(AppException):
    """Plugin or environment is misconfigured."""

    pass


class RemoteServiceError(AppException):
    """Payment provider call failed."""

    def __init__(self, message: str, operation: str):
        super().__init__(message)
        self.message = message
        self.operation = operation
