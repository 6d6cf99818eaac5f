"""
Acquisition lifecycle for one media modality (camera or microphone).

    IDLE -> ACQUIRING -> ACTIVE -> STOPPED -> IDLE
    ACQUIRING / ACTIVE -> ERROR
    ERROR -> IDLE              (explicit retry through start())

The lifecycle exclusively owns the acquired resource handle, the sample
source built on top of it and the subscription to that source. Every path
leaving ACQUIRING or ACTIVE releases them: explicit stop(), acquisition
failure, a lost timeout race and errors reported by the running source.

Runs on one asyncio event loop. Samples reach the pipeline as loop
callbacks, one at a time and in arrival order.
"""

import asyncio
import functools
import logging
from typing import Any, Callable, Optional, Protocol

from core.errors import (
    AcquisitionTimeoutError, ErrorRecord, MediaError, UnsupportedError,
    to_error_record,
)
from core.events import EventBus, Events
from core.types import Capability, LifecycleState, Modality

logger = logging.getLogger(__name__)

DEFAULT_ACQUIRE_TIMEOUT_S = 5.0


class ResourceHandle(Protocol):
    """An acquired camera or microphone."""

    def release(self) -> None:
        ...


class SampleSource(Protocol):
    """Continuous sample stream built on an acquired resource."""

    def subscribe(self, on_sample: Callable[[Any], None],
                  on_error: Callable[[BaseException], None]) -> Callable[[], None]:
        """Start delivery; returns the unsubscribe handle."""

    def close(self) -> None:
        """Release the processing model (landmarker, recognizer)."""


class Acquirer(Protocol):
    """Requests the hardware resource from the platform."""

    async def acquire(self) -> ResourceHandle:
        ...


SourceFactory = Callable[[ResourceHandle], SampleSource]


_TRANSITIONS = {
    LifecycleState.IDLE: {LifecycleState.ACQUIRING},
    LifecycleState.ACQUIRING: {LifecycleState.ACTIVE, LifecycleState.ERROR, LifecycleState.STOPPED},
    LifecycleState.ACTIVE: {LifecycleState.STOPPED, LifecycleState.ERROR},
    LifecycleState.STOPPED: {LifecycleState.IDLE},
    LifecycleState.ERROR: {LifecycleState.IDLE},
}


class InvalidTransition(RuntimeError):
    """Raised when the lifecycle is asked for a transition it does not allow."""


class MediaLifecycle:
    """State machine guarding acquisition, streaming and teardown."""

    def __init__(
        self,
        modality: Modality,
        acquirer: Acquirer,
        source_factory: SourceFactory,
        on_sample: Callable[[Any], None],
        capability: Capability = Capability.AVAILABLE,
        acquire_timeout_s: Optional[float] = DEFAULT_ACQUIRE_TIMEOUT_S,
        event_bus: Optional[EventBus] = None,
    ):
        self._modality = modality
        self._acquirer = acquirer
        self._source_factory = source_factory
        self._on_sample = on_sample
        self._capability = capability
        self._timeout = acquire_timeout_s
        self._bus = event_bus or EventBus()

        self._state = LifecycleState.IDLE
        self._error: Optional[ErrorRecord] = None

        # Bumped by every start() and stop(); outcomes of older attempts are stale.
        self._attempt = 0
        self._pending: Optional[asyncio.Future] = None

        self._handle: Optional[ResourceHandle] = None
        self._source: Optional[SampleSource] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def start(self) -> LifecycleState:
        """Acquire the resource and begin streaming.

        A call while ACQUIRING or ACTIVE is a no-op. From ERROR the
        previous error is cleared and acquisition starts over from IDLE.

        Returns:
            The state reached once this attempt settles (ACTIVE or ERROR),
            or the current state when the call was ignored or superseded.
        """
        if self._state in (LifecycleState.ACQUIRING, LifecycleState.ACTIVE):
            logger.debug("%s start ignored: already %s", self._modality.value, self._state.value)
            return self._state

        if self._state is not LifecycleState.IDLE:
            self._transition(LifecycleState.IDLE)

        self._attempt += 1
        attempt = self._attempt
        self._transition(LifecycleState.ACQUIRING)

        if self._capability is Capability.UNSUPPORTED:
            self._enter_error(UnsupportedError(f"{self._modality.value} capture is not available on this platform"))
            return self._state

        pending = asyncio.ensure_future(self._acquirer.acquire())
        self._pending = pending
        try:
            done, _ = await asyncio.wait({pending}, timeout=self._timeout)
        except asyncio.CancelledError:
            self.stop()
            raise

        if attempt != self._attempt:
            # stop() ran meanwhile and took over the pending outcome.
            return self._state
        self._pending = None

        if not done:
            pending.add_done_callback(self._discard_late_result)
            self._enter_error(AcquisitionTimeoutError(
                f"{self._modality.value} not ready after {self._timeout:.1f}s"
            ))
            return self._state

        if pending.cancelled():
            self._enter_error(MediaError("acquisition cancelled"))
            return self._state

        exc = pending.exception()
        if exc is not None:
            self._enter_error(exc)
            return self._state

        self._activate(attempt, pending.result())
        return self._state

    def stop(self):
        """Halt delivery and release everything held. Safe from any state."""
        self._attempt += 1

        if self._state is LifecycleState.ACQUIRING:
            pending, self._pending = self._pending, None
            if pending is not None:
                pending.add_done_callback(self._discard_late_result)
            self._transition(LifecycleState.STOPPED)
            self._transition(LifecycleState.IDLE)
        elif self._state is LifecycleState.ACTIVE:
            self._teardown()
            self._transition(LifecycleState.STOPPED)
            self._transition(LifecycleState.IDLE)

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def error(self) -> Optional[ErrorRecord]:
        return self._error

    @property
    def modality(self) -> Modality:
        return self._modality

    @property
    def is_active(self) -> bool:
        return self._state is LifecycleState.ACTIVE

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _activate(self, attempt: int, handle: ResourceHandle):
        self._handle = handle
        self._transition(LifecycleState.ACTIVE)
        try:
            self._source = self._source_factory(handle)
            self._unsubscribe = self._source.subscribe(
                functools.partial(self._deliver, attempt),
                functools.partial(self._source_failed, attempt),
            )
        except Exception as exc:
            self._teardown()
            self._enter_error(exc)
            return
        logger.info("%s stream active", self._modality.value)

    def _deliver(self, attempt: int, sample: Any):
        # Samples queued by a cancelled subscription are dropped.
        if attempt != self._attempt or self._state is not LifecycleState.ACTIVE:
            return
        try:
            self._on_sample(sample)
        except Exception as exc:
            logger.error("%s sample processing failed: %s", self._modality.value, exc)
            self._source_failed(attempt, exc)

    def _source_failed(self, attempt: int, exc: BaseException):
        if attempt != self._attempt or self._state is not LifecycleState.ACTIVE:
            logger.debug("%s: ignoring error from stale stream: %s", self._modality.value, exc)
            return
        self._attempt += 1
        self._teardown()
        self._enter_error(exc)

    def _discard_late_result(self, future: asyncio.Future):
        """Release a handle whose acquisition finished after it stopped mattering."""
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.debug("%s: late acquisition failure ignored: %s", self._modality.value, exc)
            return
        logger.info("%s: late acquisition discarded, releasing resource", self._modality.value)
        self._release_step("late resource", future.result().release)

    def _teardown(self):
        """Release subscription, processing model and resource, in that order."""
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        source, self._source = self._source, None
        handle, self._handle = self._handle, None

        if unsubscribe is not None:
            self._release_step("subscription", unsubscribe)
        if source is not None:
            self._release_step("sample source", source.close)
        if handle is not None:
            self._release_step("resource", handle.release)

    def _release_step(self, what: str, release: Callable[[], None]):
        # Every step runs even if an earlier one fails.
        try:
            release()
        except Exception as e:
            logger.error("%s: failed to release %s: %s", self._modality.value, what, e)

    def _enter_error(self, exc: BaseException):
        record = to_error_record(exc, self._modality)
        logger.warning("%s error [%s]: %s", self._modality.value, record.kind.value, record.message)
        self._transition(LifecycleState.ERROR, record)
        self._bus.emit(Events.MEDIA_ERROR, modality=self._modality, error=record)

    def _transition(self, new_state: LifecycleState, error: Optional[ErrorRecord] = None):
        old_state = self._state
        if new_state not in _TRANSITIONS[old_state]:
            raise InvalidTransition(
                f"{self._modality.value}: {old_state.value} -> {new_state.value}"
            )
        self._state = new_state
        self._error = error if new_state is LifecycleState.ERROR else None
        logger.debug("%s: %s -> %s", self._modality.value, old_state.value, new_state.value)
        self._bus.emit(Events.STATE_CHANGED, modality=self._modality,
                       old=old_state, new=new_state, error=self._error)
