# src/__init__.py — v1
"""routecache: bucketed caching of best-route computations."""
