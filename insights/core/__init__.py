"""
Core module for application configuration and utilities.

Note: aggregation and results are not imported at package level to avoid
circular imports with insights.models. Import them directly:
from insights.core.aggregation import ... or from insights.core.results import ...
"""
from .config import settings

__all__ = ["settings"]
