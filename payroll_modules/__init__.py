"""
Payroll Modules.

Thin orchestration over the kernel, the rate tables and the engines:

- payroll: entry generation, period lifecycle, repositories
- hr: salary adjustments and terminations
- attendance: loans, advances and absence records feeding variable inputs
"""
