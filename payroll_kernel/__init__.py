"""
Payroll Kernel

Shared foundation for the payroll resolution core:
- Currency-aware Money value objects (Decimal only, never float)
- Typed exception hierarchy with machine-readable codes
- Structured JSON logging with context propagation
"""

__version__ = "0.1.0"
