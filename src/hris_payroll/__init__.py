"""Payroll computation engine for a multi-tenant HRIS."""

__version__ = "0.1.0"
