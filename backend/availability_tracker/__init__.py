"""Appointment availability tracker: live sheet data plus daily history snapshots."""

__version__ = "0.1.0"
