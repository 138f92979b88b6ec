"""Observability utilities for the assessment engine."""
from .logger import log_event
from .tracing import span

__all__ = ["log_event", "span"]
