class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthResolutionFailure(DomainError):
    """No session, or the session has no matching users row.

    Never shown to the user: callers treat it as an anonymous visitor.
    """


class RetrievalFailure(DomainError):
    """A read against the store failed (roster, history, snapshot)."""


class WriteFailure(DomainError):
    """An insert or update was rejected by the store."""


class WriteConflict(WriteFailure):
    """An insert hit the (student_id, date) uniqueness constraint."""
