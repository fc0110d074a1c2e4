"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidConfigurationError(DomainException):
    """Rule set is empty or cannot resolve to a grade"""

    pass


class DebtorNotFoundError(DomainException):
    """Requested debtor does not exist in the snapshot source"""

    pass
