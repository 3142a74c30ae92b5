"""Timing and retry discipline around external calls."""

from siteqa.resilience.governor import CallGovernor
from siteqa.resilience.retry import RetryPolicy

__all__ = ["CallGovernor", "RetryPolicy"]
