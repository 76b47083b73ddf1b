"""
Cooperative round-robin scheduling of grid computation.

The Scheduler never loops until the work is done. Each tick it hands
every active grid one slice of the iteration budget, then, if anything
made progress, asks the host to call it again as soon as the host is
idle. Between ticks the host is free to repaint and handle input.
Nothing runs concurrently: advance() calls are strictly sequential.

The host integration point is a `call_soon(callback)` function. IdleQueue
is a minimal host for loops that poll once per frame (the pygame app,
tests); an asyncio loop's call_soon works just as well.
"""

import logging
from collections import deque


logger = logging.getLogger(__name__)


class IdleQueue:
    """
    Callbacks to run the next time the host loop is idle.

    Usage:
        idle = IdleQueue()
        scheduler = Scheduler(budget, idle.call_soon)
        while running:
            handle_events()
            idle.run_pending()
            draw()
    """

    def __init__(self):
        self._callbacks = deque()

    def call_soon(self, callback):
        self._callbacks.append(callback)

    def run_pending(self):
        """
        Run callbacks queued before this call.

        Callbacks queued while running wait for the next call, so a
        scheduler that re-arms itself runs at most once per call.

        Returns:
            Number of callbacks run
        """
        count = len(self._callbacks)
        for _ in range(count):
            self._callbacks.popleft()()
        return count


class SchedulerState:
    """
    Mutable state owned by one Scheduler.

    Attributes:
        grids: Active grids in registration (round-robin) order
        next_index: Grid the next tick starts with
        armed: A tick is queued with the host
        ticks: Number of ticks run so far
    """

    def __init__(self):
        self.grids = []
        self.next_index = 0
        self.armed = False
        self.ticks = 0


class Scheduler:
    """
    Drives advance() calls on every registered grid.

    Anything with an `advance(budget, pixel_cost)` method and a `backend`
    attribute can be registered (GridComputer, Viewport).

    Args:
        budget: Object with for_backend(backend) -> iterations per tick and
                pixel_cost_for(backend) -> per-pixel charge
                (see calibrate.IterationBudget)
        call_soon: Host function that runs a callback once the host is idle
    """

    def __init__(self, budget, call_soon):
        self.budget = budget
        self.call_soon = call_soon
        self.state = SchedulerState()

    @property
    def grids(self):
        return list(self.state.grids)

    def add(self, grid):
        """Register a grid (once) and make sure a tick is queued."""
        if grid not in self.state.grids:
            self.state.grids.append(grid)
        self.arm()

    def remove(self, grid):
        """Unregister a grid; it receives no further advance() calls."""
        state = self.state
        try:
            index = state.grids.index(grid)
        except ValueError:
            return
        del state.grids[index]
        if index < state.next_index:
            state.next_index -= 1
        if state.next_index >= len(state.grids):
            state.next_index = 0

    def arm(self):
        """Queue a tick with the host unless one is already queued."""
        if self.state.armed or not self.state.grids:
            return
        self.state.armed = True
        self.call_soon(self._on_tick)

    def _on_tick(self):
        self.state.armed = False
        if self.tick():
            self.arm()

    def tick(self):
        """
        Give each active grid one budgeted advance() call.

        Grids are visited once each, starting one position later than the
        previous tick so that no grid is always served last.

        Returns:
            True if any grid reported progress (more work may be pending)
        """
        state = self.state
        count = len(state.grids)
        if not count:
            return False

        pending = False
        start = state.next_index % count
        # Snapshot: grids added or removed by an advance() wait for the next tick
        order = state.grids[start:] + state.grids[:start]
        for grid in order:
            backend = grid.backend
            per_grid = max(1, self.budget.for_backend(backend) // count)
            if grid.advance(per_grid, self.budget.pixel_cost_for(backend)) is not None:
                pending = True

        state.ticks += 1
        if state.grids:
            state.next_index = (start + 1) % len(state.grids)
        logger.debug("Tick %d over %d grids, pending=%s", state.ticks, count, pending)
        return pending

    def shutdown(self):
        """Drop every grid; a queued tick becomes a no-op."""
        self.state.grids.clear()
        self.state.next_index = 0
