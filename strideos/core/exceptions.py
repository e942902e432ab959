"""Exceptions raised by domain helpers and translated to 400 responses by views"""


class DomainError(ValueError):
    """A business rule was violated; the message is safe to show to the user"""

    def __init__(self, message, status_code=400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PermissionDeniedError(DomainError):
    """The caller's role does not allow the operation"""

    def __init__(self, message='Insufficient permissions'):
        super().__init__(message, status_code=403)
