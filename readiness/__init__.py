"""Host readiness toolkit: probe hosts, classify results, render reports."""

__version__ = "0.3.0"
