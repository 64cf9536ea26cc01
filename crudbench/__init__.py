"""
crudbench - CRUD latency micro-benchmarks for remote graph stores.
"""

__version__ = "0.1.0"
