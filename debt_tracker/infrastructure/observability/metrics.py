"""Prometheus metrics for schedule creation, installment payments and ledger calls"""

from prometheus_client import Counter, Histogram

# Instrument metrics
instrument_counter = Counter(
    "debt_instruments_created_total",
    "Debt instruments created",
    ["kind"],  # purchase | loan
)

schedule_failure_counter = Counter(
    "debt_schedule_generation_failures_total",
    "Instruments rolled back because their installments could not be stored",
    ["kind"],
)

# Payment lifecycle
installment_transition_counter = Counter(
    "debt_installment_transitions_total",
    "Installment status changes",
    ["kind", "transition"],  # pay | revert
)

prepayment_counter = Counter(
    "debt_prepayments_total",
    "Principal prepayments recorded or reverted",
    ["action"],  # recorded | reverted
)

recalculation_counter = Counter(
    "debt_recalculations_total",
    "Loan schedule recalculations",
    ["strategy"],  # reduce_term | reduce_payment
)

# Ledger metrics
ledger_latency_histogram = Histogram(
    "ledger_latency_seconds",
    "Ledger service response time",
    ["operation"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ledger_failure_counter = Counter(
    "ledger_failures_total",
    "Failed ledger service calls",
    ["operation"],  # create | delete
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_transition(kind: str, transition: str) -> None:
    """Count a pay or revert on a purchase or loan installment"""
    installment_transition_counter.labels(kind=kind, transition=transition).inc()
