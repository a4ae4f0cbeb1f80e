"""Query execution package."""

from finance_manager.queries.collation import collation_key
from finance_manager.queries.engine import QueryEngine

__all__ = ["QueryEngine", "collation_key"]
