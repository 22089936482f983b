"""
Error types raised by the report pipeline.

Non-fatal anomalies found while aggregating are not exceptions; they are
collected as AggregationWarning entries on the report result
(see services/report_types.py).
"""

from typing import Optional


class BackendReadError(Exception):
    """Raised when a read against the database fails or returns malformed rows.

    The technical message is logged; only ``user_message`` is shown to the
    user.
    """

    def __init__(self, message: str, *, user_message: str = "Erro ao carregar dados do relatório",
                 table: Optional[str] = None):
        super().__init__(message)
        self.user_message = user_message
        self.table = table


class EmptyAggregationError(Exception):
    """Raised when a statistic needs at least one row and the input is empty."""

    user_message = "Nenhum dado encontrado para este período/tipo"

    def __init__(self, report_type: str, message: Optional[str] = None):
        super().__init__(message or "No rows to aggregate for report '{}'".format(report_type))
        self.report_type = report_type
