"""Core interfaces/abstractions.

Why:
- Defines contracts (Protocol) implemented by the concrete adapters.
- Inverts dependencies: the services depend on abstractions, tests on fakes.
"""
