"""Canadian payroll computation and remittance engine."""

__version__ = "0.1.0"
