"""Monthly and annual aggregation package."""

from finance_manager.aggregation.aggregator import Aggregator

__all__ = ["Aggregator"]
