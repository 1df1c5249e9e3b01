"""Pure domain value types for the payroll kernel.  Zero I/O."""
