"""
Helpers for invoking author-supplied callables that may be plain or async.

Hooks, choice providers, `when` predicates, i18n functions, completion
callbacks and event subscribers all go through `maybe_await`, so authors can
write whichever form suits them.
"""
from __future__ import annotations

import inspect
from typing import Any, Callable


async def maybe_await(value: Any) -> Any:
    """Await `value` if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


async def invoke(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    return await maybe_await(fn(*args, **kwargs))
