"""
Payroll Kernel - shared foundations for the Kwanza payroll engine.

Provides:
- Typed exceptions with machine-readable codes
- Structured JSON logging with request-scoped context
- Injectable clock and state-machine value types
- Whole-kwanza decimal helpers
- SQLAlchemy declarative base and session management
"""

__version__ = "0.1.0"
