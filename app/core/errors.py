"""Domain exceptions raised by services; app.main maps them to HTTP responses"""


class InvalidInputError(ValueError):
    """400"""


class NotFoundError(LookupError):
    """404"""


class ConflictError(Exception):
    """409"""


class PermissionDeniedError(Exception):
    """403"""
