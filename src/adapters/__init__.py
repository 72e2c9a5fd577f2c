"""Concrete I/O adapters (HTTP clients, downloads, plugin loading).

Each adapter implements a contract from `core.interfaces`.
"""
