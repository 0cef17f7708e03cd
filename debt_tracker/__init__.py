"""Debt tracker: installment scheduling and payment-lifecycle engine"""

__version__ = "0.1.0"
