"""
Lifecycle dispatcher - fans hooks out to request listeners.

Listeners are sorted into one list per capability when the dispatcher is
built, in registration order. Dispatch never checks what a listener
implements at call time.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Optional, Sequence

from .base import LIFECYCLE_CAPABILITIES, EndHook

logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Invokes lifecycle hooks on request listeners.

    Usage:
        dispatcher = Dispatcher(listeners)

        end = dispatcher.invoke_did_start_hook(ParsingDidStart, request_context)
        ...
        end()                          # end hooks run in reverse order

        await dispatcher.invoke_hook_async(DidResolveOperation, request_context)
        response = await dispatcher.invoke_hooks_until_non_null(
            ResponseForOperation, request_context
        )
    """

    def __init__(self, listeners: Sequence[object]):
        """
        Initialize dispatcher.

        Args:
            listeners: Request listeners in registration order
        """
        self.listeners = list(listeners)
        self._targets: dict[type, list[object]] = {
            capability: [listener for listener in self.listeners if isinstance(listener, capability)]
            for capability in LIFECYCLE_CAPABILITIES
        }

    def targets(self, capability: type) -> list[object]:
        """Listeners implementing a capability, in registration order."""
        try:
            return self._targets[capability]
        except KeyError:
            raise ValueError(f"Unknown lifecycle capability: {capability!r}") from None

    def has_targets(self, capability: type) -> bool:
        return bool(self.targets(capability))

    def invoke_did_start_hook(self, capability: type, *args: Any) -> EndHook:
        """
        Call start hooks in order and return one callback ending them all.

        The returned callback invokes the collected end hooks in reverse
        registration order. If a start hook raises, end hooks already
        collected are called with the error before it propagates.
        """
        end_hooks: list[EndHook] = []

        for target in self.targets(capability):
            try:
                end_hook = getattr(target, capability.hook_name)(*args)
            except Exception as error:
                try:
                    _run_end_hooks(end_hooks, (error,))
                except Exception:
                    # Already logged; the start failure is the one to report
                    pass
                raise error
            if end_hook is not None:
                end_hooks.append(end_hook)

        def did_end(*end_args: Any) -> None:
            _run_end_hooks(end_hooks, end_args)

        return did_end

    async def invoke_hook_async(self, capability: type, *args: Any) -> None:
        """Await every hook strictly in registration order."""
        for target in self.targets(capability):
            result = getattr(target, capability.hook_name)(*args)
            if inspect.isawaitable(result):
                await result

    async def invoke_hooks_until_non_null(self, capability: type, *args: Any) -> Optional[Any]:
        """Return the first non-None hook result; later hooks are not called."""
        for target in self.targets(capability):
            value = getattr(target, capability.hook_name)(*args)
            if inspect.isawaitable(value):
                value = await value
            if value is not None:
                return value
        return None


def _run_end_hooks(end_hooks: list[EndHook], args: tuple) -> None:
    """Call end hooks last-started-first. All of them run; the first error is re-raised."""
    first_error: Optional[Exception] = None

    for end_hook in reversed(end_hooks):
        try:
            end_hook(*args)
        except Exception as error:
            logger.error(f"Lifecycle end hook failed: {error}", exc_info=True)
            if first_error is None:
                first_error = error

    if first_error is not None:
        raise first_error
