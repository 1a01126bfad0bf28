"""Global switches that affect graph construction."""

import contextlib


class Config:
    """Global config flags affecting graph construction."""

    # When False, operators return plain leaves with no parents or rules.
    enable_backprop = True


@contextlib.contextmanager
def using_config(name: str, value: bool):
    """Temporarily set a Config attribute inside a context."""
    old_value = getattr(Config, name)
    setattr(Config, name, value)
    try:
        yield
    finally:
        setattr(Config, name, old_value)


def no_grad():
    """Context manager for forward-only evaluation (no graph is recorded)."""
    return using_config("enable_backprop", False)
