"""
Module ORM Registry (``payroll_modules._orm_registry``).

Ensures every module-level SQLAlchemy model is imported so that
``Base.metadata`` holds its table before ``create_tables()`` runs.
MUST NOT be imported by ``payroll_kernel`` at module level; the kernel
imports it lazily inside ``create_tables``.
"""


def import_all_orm_models() -> None:
    """Import every ``payroll_modules.*.orm`` module.  Idempotent."""
    import payroll_modules.payroll.orm  # noqa: F401
