"""Look up parallel backends by name."""

from __future__ import annotations

from typing import Literal

from ..errors import ConfigurationError
from .backends.base import ParallelBackend
from .backends.serial import SerialBackend
from .backends.threads import ThreadPoolBackend

BackendName = Literal["serial", "threads"]

_BACKENDS: dict[str, type[ParallelBackend]] = {
    "serial": SerialBackend,
    "threads": ThreadPoolBackend,
}

# Shared by every caller that names no backend
_SERIAL = SerialBackend()


def create_backend(name: BackendName, **kwargs) -> ParallelBackend:
    """
    Instantiate a backend by name.

    Args:
        name: "serial" or "threads".
        **kwargs: Backend arguments, e.g. ``n_workers`` for threads.

    Raises:
        ConfigurationError: If the name is unknown.
    """
    try:
        backend_cls = _BACKENDS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown backend: {name}. Available: {', '.join(_BACKENDS)}"
        ) from None
    return backend_cls(**kwargs)


def get_backend(
    backend: BackendName | ParallelBackend | None = None, **kwargs
) -> ParallelBackend:
    """Resolve None, a backend name or an instance to a backend."""
    if backend is None:
        return _SERIAL
    if isinstance(backend, ParallelBackend):
        return backend
    return create_backend(backend, **kwargs)
