"""Lazy values rendered to text when a request is built.

Every part of a request (method, URL, path, headers, query values and body)
is stored as a LazyValue and only rendered when the request is built. This
lets a header observe a token that is refreshed after the request was
configured, and lets secrets be substituted or masked at render time.

The set of accepted inputs is closed:

- ``str`` becomes a Constant
- a ``Ref`` is a caller-owned mutable text cell, read on every render
- a zero-argument callable becomes a Computed value, called on every render
- any other LazyValue instance is used as-is

Examples:
    Observing a later mutation::

        token = Ref("secret")
        builder = RequestBuilder("https://api.example.com").header("token", token)
        token.set("super-secret")
        builder.build().headers["token"]  # 'super-secret'

    Rejected input::

        >>> to_lazy(123)
        Traceback (most recent call last):
        ...
        resilient_requests.exceptions.ConfigurationError: can not convert 123 to stringer
"""

import inspect
from collections.abc import Callable
from typing import Any

from resilient_requests.exceptions import ConfigurationError


class LazyValue:
    """Base class for values rendered to text on demand."""

    def render(self) -> str:
        """Return the current text representation."""
        raise NotImplementedError

    def __str__(self) -> str:
        return self.render()


class Constant(LazyValue):
    """A fixed piece of text."""

    def __init__(self, text: str) -> None:
        self.text = text

    def render(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"Constant({self.text!r})"


class Ref(LazyValue):
    """A mutable text cell owned by the caller.

    Builders keep a reference to the cell, not to its content, so every
    render sees the value current at that moment. Clones of a builder share
    the same cell.

    Attributes:
        value: The current text.

    Example:
        >>> token = Ref("a")
        >>> token.set("b")
        >>> token.render()
        'b'
    """

    def __init__(self, value: str = "") -> None:
        self.value = value

    def set(self, value: str) -> None:
        """Replace the current text."""
        self.value = value

    def render(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"Ref({self.value!r})"


class Computed(LazyValue):
    """Text produced by a zero-argument callable, evaluated once per render."""

    def __init__(self, fn: Callable[[], str]) -> None:
        self.fn = fn

    def render(self) -> str:
        return str(self.fn())

    def __repr__(self) -> str:
        return f"Computed({self.fn!r})"


def _is_zero_arg_callable(value: Any) -> bool:
    if not callable(value) or isinstance(value, type):
        return False
    try:
        signature = inspect.signature(value)
    except (TypeError, ValueError):
        # Builtins without introspectable signatures
        return True
    return all(
        p.default is not p.empty or p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD)
        for p in signature.parameters.values()
    )


def to_lazy(value: Any) -> LazyValue:
    """Convert a supported input into a LazyValue.

    Args:
        value: A LazyValue, a string or a zero-argument callable.

    Returns:
        The LazyValue that renders the input.

    Raises:
        ConfigurationError: If the input is not one of the supported kinds.
    """
    if isinstance(value, LazyValue):
        return value
    if isinstance(value, str):
        return Constant(value)
    if _is_zero_arg_callable(value):
        return Computed(value)
    raise ConfigurationError(f"can not convert {value} to stringer")


def secret_key(name: str) -> str:
    """Return the placeholder that stands for the secret ``name``.

    Example:
        >>> secret_key("api_token")
        '${api_token}'
    """
    return "${" + name + "}"
