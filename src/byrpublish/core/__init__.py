"""
Core Layer - domain model, ports, exceptions and pure validators.

Nothing in core performs I/O; adapters implement the ports.
"""
