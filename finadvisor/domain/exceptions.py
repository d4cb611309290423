"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class DataAccessError(DomainException):
    """Financial data store is unavailable or a query failed"""

    pass


class AIServiceError(DomainException):
    """Text generation backend returned an error or is unavailable"""

    pass


class InvalidLoanRequestError(DomainException):
    """Loan request parameters are outside the supported range"""

    pass
