"""
=============================================================================
WORKER DISPATCHER (BOUNDED SLOT POOL)
=============================================================================

The dispatcher caps how many connection handlers run at once. It is not
a queue-fed thread pool: every accepted connection gets its own thread,
but only while one of N "slots" is free.

=============================================================================
SLOTS, NOT A QUEUE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        WorkerPool(capacity=4)                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   ┌──────────┐ ┌──────────┐ ┌──────────┐ ┌──────────┐              │
    │   │  Slot 0  │ │  Slot 1  │ │  Slot 2  │ │  Slot 3  │              │
    │   │ occupied │ │   free   │ │ occupied │ │   free   │              │
    │   │ Thread-A │ │    -     │ │ Thread-C │ │    -     │              │
    │   └──────────┘ └──────────┘ └──────────┘ └──────────┘              │
    │                                                                      │
    │   acquire()      claim the first free slot                          │
    │   release(i)     handler finished, slot i is free again             │
    │   is_saturated() every slot is occupied                             │
    │   drain()        wait until every handler has finished              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

When the pool is saturated the acceptor stops accepting and calls
drain(). Pending clients wait in the kernel's listen backlog, never in
our memory. The cost is coarse throughput: the acceptor waits for the
whole pool, not for the first free slot.

=============================================================================
THREAD SAFETY
=============================================================================

The slot table is the only state shared between the acceptor and the
handler threads. Every read and write of it happens while holding
self._cond (a Condition wrapping a Lock):

    acceptor thread                 handler thread
    ───────────────                 ──────────────
    with cond:                      ... serve request ...
        find free slot              with cond:
        mark occupied                   mark slot free
                                        cond.notify_all()
    with cond:
        while any occupied:
            cond.wait()

=============================================================================
"""

import threading
import time
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Any, List


logger = logging.getLogger(__name__)


# Number of handlers allowed to run at once
DEFAULT_CAPACITY = 5


class PoolSaturatedError(RuntimeError):
    """Raised by acquire() when every slot is occupied."""


class SlotState(Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"


@dataclass
class WorkerSlot:
    """
    One unit of handler capacity.

    Attributes:
        index: Position in the pool (0..capacity-1).
        state: AVAILABLE or OCCUPIED.
        thread: Handler thread running in this slot, None when available.
        tasks_completed: Handlers that finished normally in this slot.
        tasks_failed: Handlers that raised in this slot.
    """
    index: int
    state: SlotState = SlotState.AVAILABLE
    thread: Optional[threading.Thread] = None
    tasks_completed: int = 0
    tasks_failed: int = 0

    @property
    def available(self) -> bool:
        return self.state == SlotState.AVAILABLE


class WorkerPool:
    """
    Fixed-capacity pool of handler slots.

    Usage:
        pool = WorkerPool(capacity=5)

        if pool.is_saturated():
            pool.drain()
        pool.dispatch(handler.handle, conn)

        pool.drain()   # on shutdown
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")

        self._capacity = capacity
        self._slots: List[WorkerSlot] = [WorkerSlot(index=i) for i in range(capacity)]

        # Guards _slots. Handlers notify it when they release a slot.
        self._cond = threading.Condition(threading.Lock())

        self._dispatched = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def active_count(self) -> int:
        """Number of occupied slots."""
        with self._cond:
            return self._occupied_count()

    @property
    def slots(self) -> List[WorkerSlot]:
        """Snapshot of the slot table (copies, safe to inspect)."""
        with self._cond:
            return [
                WorkerSlot(
                    index=s.index,
                    state=s.state,
                    thread=s.thread,
                    tasks_completed=s.tasks_completed,
                    tasks_failed=s.tasks_failed,
                )
                for s in self._slots
            ]

    def _occupied_count(self) -> int:
        # Caller must hold self._cond
        return sum(1 for s in self._slots if not s.available)

    # =========================================================================
    # SLOT TRANSITIONS
    # =========================================================================

    def is_saturated(self) -> bool:
        """True when every slot is occupied."""
        with self._cond:
            return self._occupied_count() == self._capacity

    def acquire(self) -> int:
        """
        Claim the first available slot.

        Returns:
            Index of the claimed slot.

        Raises:
            PoolSaturatedError: No slot is available. Callers are expected
                                to check is_saturated() or drain() first.
        """
        with self._cond:
            for slot in self._slots:
                if slot.available:
                    slot.state = SlotState.OCCUPIED
                    logger.info(f"Request will be handled by slot {slot.index}")
                    return slot.index

        raise PoolSaturatedError(f"All {self._capacity} worker slots are occupied")

    def release(self, index: int):
        """
        Mark a slot available again and wake anyone waiting in drain().

        Args:
            index: Slot index previously returned by acquire().
        """
        with self._cond:
            slot = self._slots[index]
            slot.state = SlotState.AVAILABLE
            slot.thread = None
            self._cond.notify_all()

    def drain(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every occupied slot's handler has completed.

        Args:
            timeout: Maximum seconds to wait. None waits forever.

        Returns:
            True if the pool is empty, False if the timeout elapsed first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout

        with self._cond:
            busy = self._occupied_count()
            if busy:
                logger.info(f"Worker pool full ({busy}/{self._capacity}), draining")

            threads = [s.thread for s in self._slots if s.thread is not None]

            while self._occupied_count():
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    logger.warning("Timed out waiting for worker slots to drain")
                    return False
                self._cond.wait(remaining)

        # Slots are free; make sure the threads themselves have exited
        for thread in threads:
            if thread is not threading.current_thread():
                remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
                thread.join(remaining)

        return True

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def dispatch(self, func: Callable[..., Any], *args: Any) -> int:
        """
        Run func(*args) on a new thread bound to a free slot.

        The slot is released when func returns or raises. Exceptions are
        logged here and never reach the caller.

        Returns:
            Index of the slot the handler runs in.

        Raises:
            PoolSaturatedError: No slot is available.
        """
        index = self.acquire()

        thread = threading.Thread(
            target=self._run_in_slot,
            args=(index, func, args),
            name=f"Slot-{index}",
            daemon=True,
        )

        with self._cond:
            self._slots[index].thread = thread
            self._dispatched += 1

        try:
            thread.start()
        except RuntimeError:
            # Could not create the thread, give the slot back
            self.release(index)
            raise

        return index

    def _run_in_slot(self, index: int, func: Callable[..., Any], args: tuple):
        start_time = time.time()
        failed = False

        try:
            func(*args)
        except Exception as e:
            failed = True
            elapsed = time.time() - start_time
            logger.exception(f"Slot {index} handler failed after {elapsed:.3f}s: {e}")
        finally:
            with self._cond:
                slot = self._slots[index]
                if failed:
                    slot.tasks_failed += 1
                else:
                    slot.tasks_completed += 1
            self.release(index)

        if not failed:
            logger.debug(f"Slot {index} completed handler in {time.time() - start_time:.3f}s")

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def stats(self) -> dict:
        """Slot and handler counts for logging and tests."""
        with self._cond:
            return {
                "slots": {
                    "capacity": self._capacity,
                    "occupied": self._occupied_count(),
                },
                "handlers": {
                    "dispatched": self._dispatched,
                    "completed": sum(s.tasks_completed for s in self._slots),
                    "failed": sum(s.tasks_failed for s in self._slots),
                },
            }
