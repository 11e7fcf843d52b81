import inspect
import re
import typing
from collections.abc import Callable
from typing import Any


def callable_name(cb: Any) -> str:
    """Return a human-readable name for a callable, safe for logging.

    Falls back through ``__qualname__``, ``__name__``, and ``repr()``
    so that ``functools.partial``, callable instances, and other exotic
    callables never raise ``AttributeError``.  Bound methods resolve to
    their function's qualified name.

    Args:
        cb: Any callable object.

    Returns:
        Display name string.
    """
    return (
        getattr(cb, "__qualname__", None) or getattr(cb, "__name__", None) or repr(cb)
    )


def normalize_name(name: str) -> str:
    """Normalize a package/plugin name per PEP 503.

    Replaces any run of hyphens, underscores, or periods with a single
    hyphen and lower-cases the result, so that ``My_Plugin``,
    ``my-plugin``, and ``my.plugin`` all map to ``my-plugin``.
    """
    return re.sub(r"[-_.]+", "-", name).lower()


def first_param_type(func: Callable[..., Any], *, skip_self: bool = False) -> type:
    """Return the annotated type of *func*'s first positional parameter.

    Used to infer the event type of a handler from its signature, e.g.
    ``async def on_ping(event: Ping)`` yields ``Ping``.

    Args:
        func: Function or bound method to inspect.
        skip_self: Skip the leading ``self`` of an unbound method.

    Returns:
        The annotated class.

    Raises:
        TypeError: If there is no positional parameter, it carries no
            annotation, the annotation cannot be resolved, or it is not a
            class.
    """
    name = callable_name(func)
    positional = [
        p
        for p in inspect.signature(func).parameters.values()
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
    ]
    if skip_self:
        positional = positional[1:]
    if not positional:
        raise TypeError(f"{name} takes no event parameter to infer a type from")

    param = positional[0]
    try:
        hints = typing.get_type_hints(func)
    except Exception as exc:
        raise TypeError(f"cannot resolve annotations of {name}") from exc

    hint = hints.get(param.name)
    if hint is None:
        raise TypeError(
            f"parameter '{param.name}' of {name} has no annotation; "
            "pass the event type explicitly"
        )
    if not isinstance(hint, type):
        raise TypeError(
            f"annotation {hint!r} of {name} is not a class; "
            "pass the event type explicitly"
        )
    return hint
