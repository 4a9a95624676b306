"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidInputError(DomainException):
    """Amount, date or installment index rejected before any mutation"""

    pass


class InstallmentAlreadyPaidError(InvalidInputError):
    """Operation attempted on an installment that is already paid"""

    pass


class ContractNotFoundError(DomainException):
    """No contract stored under the requested id"""

    pass


class DuplicateParcelError(DomainException):
    """Another contract already holds the same manzana/lote"""

    pass


class PersistenceError(DomainException):
    """Repository rejected a read or write"""

    pass
