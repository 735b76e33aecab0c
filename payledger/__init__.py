"""Pay Ledger - temporal payroll ledger for contractor record keeping."""

__version__ = "0.1.0"
