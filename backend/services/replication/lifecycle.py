"""
Lifecycle primitives shared by the replication producer and consumer.

A component moves IDLE -> RUNNING -> STOPPING -> IDLE. Its background loop
observes exactly one CancellationToken, derived at start() from the
coordinator's shutdown token; stop() cancels that token and nothing else.
"""
import asyncio
import inspect
from enum import Enum
from typing import Any, Awaitable, List, Optional, Tuple

from core.exceptions.errors import AlreadyRunningError, TransportError
from core.logging import StructuredLogger


class LifecycleState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"


class CancellationToken:
    """One-shot awaitable cancellation flag. Cancelling a token cancels its children."""

    def __init__(self):
        self._event = asyncio.Event()
        self._children: List["CancellationToken"] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self):
        if self._event.is_set():
            return
        self._event.set()
        children, self._children = self._children, []
        for child in children:
            child.cancel()

    async def wait(self):
        await self._event.wait()

    def child(self) -> "CancellationToken":
        child = CancellationToken()
        if self.cancelled:
            child.cancel()
        else:
            self._children.append(child)
        return child


async def sleep_or_cancel(token: CancellationToken, seconds: float) -> bool:
    """Sleeps for `seconds` unless the token fires first. Returns True if cancelled."""
    if token.cancelled:
        return True
    try:
        await asyncio.wait_for(token.wait(), timeout=seconds)
        return True
    except asyncio.TimeoutError:
        return token.cancelled


async def run_until_cancelled(aw: Awaitable, token: CancellationToken) -> Tuple[bool, Any]:
    """
    Awaits `aw` unless the token fires first.

    Returns (True, result) when `aw` finished, (False, None) when it was
    abandoned because of cancellation. Exceptions raised by `aw` propagate.
    """
    if token.cancelled:
        if inspect.iscoroutine(aw):
            aw.close()
        return False, None

    work = asyncio.ensure_future(aw)
    waiter = asyncio.ensure_future(token.wait())
    try:
        await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not work.done():
            work.cancel()
            await asyncio.gather(work, return_exceptions=True)

    if work.cancelled():
        return False, None
    return True, work.result()


class BackgroundService:
    """
    Start/stop state machine around one transport and one background loop.

    Subclasses provide _create_transport() and _run(token, transport).
    The transport object must expose async start() and stop().
    """

    name = "background service"

    def __init__(self, logger: StructuredLogger):
        self.logger = logger
        self._state = LifecycleState.IDLE
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._token: Optional[CancellationToken] = None
        self._transport = None
        self._failure: Optional[BaseException] = None

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is LifecycleState.RUNNING

    @property
    def failed(self) -> bool:
        """True once the loop has exited with an error, until the next stop()."""
        return self._failure is not None

    @property
    def failure(self) -> Optional[BaseException]:
        return self._failure

    def _create_transport(self):
        raise NotImplementedError

    async def _run(self, token: CancellationToken, transport) -> None:
        raise NotImplementedError

    async def start(self, token: Optional[CancellationToken] = None) -> None:
        """Opens the transport and spawns the loop. Raises AlreadyRunningError unless idle."""
        async with self._lock:
            if self._state is not LifecycleState.IDLE:
                raise AlreadyRunningError(f"{self.name} is already running")

            transport = self._create_transport()
            try:
                await transport.start()
            except Exception:
                await self._close(transport)
                raise

            self._transport = transport
            self._failure = None
            self._token = token.child() if token is not None else CancellationToken()
            self._state = LifecycleState.RUNNING
            self._task = asyncio.create_task(self._guarded_run(self._token, transport), name=self.name)
            self.logger.info(f"{self.name} started")

    async def _guarded_run(self, token: CancellationToken, transport):
        try:
            await self._run(token, transport)
        except asyncio.CancelledError:
            self.logger.info(f"{self.name} task cancelled")
            raise
        except Exception as e:
            # State stays RUNNING until stop(); readiness reports the failure.
            self._failure = e
            self.logger.critical(f"{self.name} loop crashed", exception=e)
        else:
            self.logger.info(f"{self.name} loop finished")

    async def stop(self, timeout: float = 10.0) -> None:
        """
        Cancels the loop, waits up to `timeout` for it to exit, then closes the
        transport. The transport is closed after the deadline even if the loop
        is still running. A no-op when already idle.
        """
        async with self._lock:
            if self._state is LifecycleState.IDLE:
                return

            self._state = LifecycleState.STOPPING
            self.logger.info(f"stopping {self.name}")
            self._token.cancel()

            task = self._task
            transport = self._transport
            self._transport = None
            try:
                done, _ = await asyncio.wait({task}, timeout=timeout)
                if not done:
                    self.logger.warning(
                        f"{self.name} did not exit within the shutdown deadline, closing transport",
                        metadata={"timeout_seconds": timeout},
                    )
                close_error = await self._close(transport)
                if not task.done():
                    task.cancel()
                await asyncio.gather(task, return_exceptions=True)
            finally:
                self._task = None
                self._token = None
                self._failure = None
                self._state = LifecycleState.IDLE

            self.logger.info(f"{self.name} stopped")
            if close_error is not None:
                raise TransportError(f"failed to close {self.name} transport: {close_error}") from close_error

    async def _close(self, transport) -> Optional[Exception]:
        try:
            await transport.stop()
        except Exception as e:
            self.logger.error(f"failed to close {self.name} transport", exception=e)
            return e
        return None
