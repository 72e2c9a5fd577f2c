"""Runtime loading of the preparation collaborators.

The merging/validation code lives in a separate package; the CLI receives a
`module:attribute` reference and this loader resolves it into a `Preparers`
registry. The attribute may be the registry itself or a zero-argument factory.
"""

from __future__ import annotations

import importlib

import structlog

from core.errors import ConfigurationError
from core.interfaces.preparers import Preparers

logger = structlog.get_logger()


def load_preparers(ref: str | None) -> Preparers:
    """Resolve `package.module:attr` into a `Preparers`; `None` yields an empty registry."""

    if not ref:
        return Preparers()

    module_name, sep, attr = ref.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(f"invalid preparers reference (expected module:attribute): {ref}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"cannot import preparers module {module_name!r}: {exc}") from exc

    try:
        target = getattr(module, attr)
    except AttributeError as exc:
        raise ConfigurationError(f"module {module_name!r} has no attribute {attr!r}") from exc

    if not isinstance(target, Preparers) and callable(target):
        target = target()

    if not isinstance(target, Preparers):
        raise ConfigurationError(f"{ref} did not resolve to a Preparers registry")

    logger.info("preparers_loaded", ref=ref, available=target.available())
    return target
