"""
Process-wide hooks for uncaught errors and unhandled async failures.

The interceptor and the backend recorder only see the `RuntimeHooks`
interface: two async callbacks, one for uncaught errors and one for
unhandled rejections. `PythonRuntimeHooks` wires those callbacks into the
interpreter:

- sys.excepthook and threading.excepthook -> on_error
- the asyncio loop exception handler (exceptions nobody awaited) -> on_rejection

Previous handlers keep running and are restored by `unregister()`.
"""

import asyncio
import sys
import threading
from typing import Awaitable, Callable, Optional, Protocol, Set

from faultline.utils.logging import get_logger

logger = get_logger(__name__)

ErrorCallback = Callable[[BaseException], Awaitable[object]]


class RuntimeHooks(Protocol):
    """Registration interface the host runtime implements."""

    def register(self, on_error: ErrorCallback, on_rejection: ErrorCallback) -> None:
        ...

    def unregister(self) -> None:
        ...


class PythonRuntimeHooks:
    """
    RuntimeHooks backed by the interpreter's global exception hooks.

    Args:
        loop: Event loop whose exception handler to take over. Defaults to
            the running loop at `register()` time, if any.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._on_error: Optional[ErrorCallback] = None
        self._on_rejection: Optional[ErrorCallback] = None
        self._previous_excepthook = None
        self._previous_threading_excepthook = None
        self._previous_loop_handler = None
        self._loop_hooked = False
        self._tasks: Set[asyncio.Task] = set()

    @property
    def registered(self) -> bool:
        return self._on_error is not None

    def register(self, on_error: ErrorCallback, on_rejection: ErrorCallback) -> None:
        if self.registered:
            raise RuntimeError("Runtime hooks are already registered")

        self._on_error = on_error
        self._on_rejection = on_rejection

        self._previous_excepthook = sys.excepthook
        sys.excepthook = self._excepthook

        self._previous_threading_excepthook = threading.excepthook
        threading.excepthook = self._threading_excepthook

        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.debug("No running event loop; async failure hook not installed")

        if self._loop is not None:
            self._previous_loop_handler = self._loop.get_exception_handler()
            self._loop.set_exception_handler(self._loop_exception_handler)
            self._loop_hooked = True

        logger.info("Global error hooks registered")

    def unregister(self) -> None:
        if not self.registered:
            return

        if sys.excepthook == self._excepthook:
            sys.excepthook = self._previous_excepthook
        if threading.excepthook == self._threading_excepthook:
            threading.excepthook = self._previous_threading_excepthook
        if self._loop_hooked and self._loop is not None and not self._loop.is_closed():
            self._loop.set_exception_handler(self._previous_loop_handler)

        self._loop_hooked = False
        self._on_error = None
        self._on_rejection = None
        logger.info("Global error hooks unregistered")

    def _excepthook(self, exc_type, exc_value, exc_tb) -> None:
        self._previous_excepthook(exc_type, exc_value, exc_tb)
        if self._on_error is not None and isinstance(exc_value, Exception):
            self._dispatch(self._on_error, exc_value)

    def _threading_excepthook(self, args) -> None:
        self._previous_threading_excepthook(args)
        if self._on_error is not None and isinstance(args.exc_value, Exception):
            self._dispatch(self._on_error, args.exc_value)

    def _loop_exception_handler(self, loop: asyncio.AbstractEventLoop, context: dict) -> None:
        if self._previous_loop_handler is not None:
            self._previous_loop_handler(loop, context)
        else:
            loop.default_exception_handler(context)

        if self._on_rejection is None:
            return

        exc = context.get("exception")
        if exc is None:
            exc = RuntimeError(context.get("message", "Unhandled exception in event loop"))
        self._dispatch(self._on_rejection, exc)

    def _dispatch(self, callback: ErrorCallback, exc: BaseException) -> None:
        """Run callback(exc) on whatever event loop is reachable from the caller."""
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None:
            task = running.create_task(self._guarded(callback, exc))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        elif self._loop is not None and self._loop.is_running():
            asyncio.run_coroutine_threadsafe(self._guarded(callback, exc), self._loop)
        else:
            asyncio.run(self._guarded(callback, exc))

    @staticmethod
    async def _guarded(callback: ErrorCallback, exc: BaseException) -> None:
        try:
            await callback(exc)
        except Exception as e:
            # A failing error hook must never feed back into the hooks
            logger.error(f"Error hook failed while handling {type(exc).__name__}: {e}")
