"""Forklift Check - forklift safety inspections, downtime and preventive maintenance."""

__version__ = "1.0.0"
