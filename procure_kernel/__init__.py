"""
Procurement Kernel

Shared foundation for the procurement document core:
- Typed, code-carrying exceptions
- Structured JSON logging
- Money / Currency / Rate value objects
- Injectable clocks and workflow value objects
"""

__version__ = "0.1.0"
