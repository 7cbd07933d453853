"""
Observability Module for Supplier Resolution

Provides:
- Structured logging with correlation IDs (session, operation, supplier, document)
- JSON and human-readable formatters
"""

from core.observability.logging import (
    get_logger,
    configure_logging,
    CorrelationContext,
    with_correlation,
)

__all__ = [
    "get_logger",
    "configure_logging",
    "CorrelationContext",
    "with_correlation",
]
