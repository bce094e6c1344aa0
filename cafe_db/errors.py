# error taxonomy shared by every manager
# commands catch CafeError at the operation boundary, so none of these end the repl


class CafeError(Exception):
    """base class for anything an operation can be abandoned with"""


class ValidationError(CafeError):
    """input out of bounds: length, numeric domain, uniqueness"""


class NotFoundError(CafeError):
    """referenced user / menu item / order is absent"""


class PermissionDenied(CafeError):
    """current role may not perform the operation"""


class DatabaseError(CafeError):
    """sqlite failure (connectivity or constraint violation)"""
