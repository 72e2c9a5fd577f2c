"""Core of the publication worker.

Why a separate package:
- Holds the domain, contracts and pipelines without any CLI concerns.
- Adapters and the CLI depend on the core, never the other way around.
"""
