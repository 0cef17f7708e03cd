"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Malformed or missing required input"""

    pass


class NoPendingPrepayment(ValidationError):
    """Recalculation requested for a loan without unapplied prepayments"""

    pass


class InstrumentNotFound(DomainException):
    """Instrument, installment or prepayment does not exist for this user"""

    pass


class ScheduleGenerationFailed(DomainException):
    """Installments could not be stored; the instrument was rolled back"""

    pass


class PaymentOrderViolation(DomainException):
    """Pay attempted on an installment that is not the earliest pending one"""

    pass


class NoRevertibleTransaction(DomainException):
    """Revert attempted on an installment not paid through a ledger transaction"""

    pass


class ExternalProcedureError(DomainException):
    """Recalculation or cascade procedure failed, or stored rows are inconsistent"""

    pass


class LedgerAPIError(DomainException):
    """Ledger service returned an error or is unavailable"""

    pass
