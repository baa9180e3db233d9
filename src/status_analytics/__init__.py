"""Incident analytics event log and Prometheus metrics for the status service."""

__version__ = "0.1.0"
