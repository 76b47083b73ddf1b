"""
Throughput calibration for the cooperative scheduler.

Rather than reading the clock after every pixel, the scheduler gives
each grid a fixed number of escape-time iterations per tick. That number
is measured once per numeric backend at startup: evaluate a point known
to be in the set with a doubling iteration cap until one timeslice
(1000/60 ms) has elapsed, and count the iterations that fit.

A bare iteration count undercharges pixels far from the set, which
escape almost at once but still pay for coloring and writing. A second
measurement scans such pixels through GridComputer.advance() and turns
their overhead into a per-pixel charge in iterations.
"""

import logging
import math
import time

from .compute import DEFAULT_MAX_ITERATIONS, INTERIOR_X, INTERIOR_Y
from .config import SETTINGS
from .errors import CalibrationAnomaly
from .grid import GridComputer, PlaneRegion
from .numeric import get_backend


logger = logging.getLogger(__name__)

# Every point of this region escapes on the first iteration
PIXEL_SAMPLE_REGION = PlaneRegion(4.0, 4.0, 1.0, 1.0)
PIXEL_SAMPLE_SIZE = 256


def _run_trial(backend, start_iterations, timeslice_ms, clock, max_doublings):
    """
    Count iterations completed before one timeslice elapses.

    Only the first evaluation includes start_iterations. The evaluation
    that crosses the threshold is not counted.

    Raises:
        CalibrationAnomaly if the threshold is not reached within
        max_doublings evaluations
    """
    x = backend.from_value(INTERIOR_X)
    y = backend.from_value(INTERIOR_Y)
    total = 0
    increment = DEFAULT_MAX_ITERATIONS // 2
    started = clock()
    for _ in range(max_doublings):
        increment *= 2
        cap = start_iterations + increment
        remaining, _, _ = backend.escape_time(x, y, cap, False)
        if (clock() - started) * 1000.0 >= timeslice_ms:
            return total
        total += cap - remaining
        start_iterations = 0
    raise CalibrationAnomaly(
        f"{backend.name}: {timeslice_ms}ms not reached after {max_doublings} doublings"
    )


def calibrate(start_iterations=0, trials=None, use_arbitrary_precision=False,
              backend=None, timeslice_ms=None, clock=time.perf_counter,
              max_doublings=None, minimum=None):
    """
    Estimate how many iterations fit in one timeslice.

    Options left as None are read from the settings.

    Args:
        start_iterations: Extra iterations for the first evaluation of the
                          first trial
        trials: Number of measurement trials to average (default 8)
        use_arbitrary_precision: Calibrate the decimal backend
        backend: Explicit backend (overrides use_arbitrary_precision)
        timeslice_ms: Length of one timeslice in milliseconds
        clock: Function returning seconds as a float
        max_doublings: Cap on evaluations per trial
        minimum: Fallback when no trial produced a measurement

    Returns:
        int iterations per timeslice (at least 1)

    Raises:
        ValueError if an explicit option is out of range
    """
    if trials is None:
        trials = SETTINGS['calibration_trials']
    if timeslice_ms is None:
        timeslice_ms = SETTINGS['timeslice_ms']
    if max_doublings is None:
        max_doublings = SETTINGS['max_calibration_doublings']
    if minimum is None:
        minimum = SETTINGS['min_iterations_per_timeslice']
    if trials < 1 or max_doublings < 1 or minimum < 1 or not timeslice_ms > 0:
        raise ValueError(
            f"Bad calibration options: trials={trials}, timeslice_ms={timeslice_ms}, "
            f"max_doublings={max_doublings}, minimum={minimum}"
        )
    if backend is None:
        backend = get_backend(use_arbitrary_precision, SETTINGS['decimal_digits'])

    grand_total = 0
    last_good = None
    for trial in range(trials):
        try:
            total = _run_trial(backend, start_iterations, timeslice_ms, clock, max_doublings)
            last_good = total
        except CalibrationAnomaly as e:
            total = last_good if last_good is not None else minimum
            logger.warning("Calibration trial %d: %s; using %d", trial, e, total)
        grand_total += total
        start_iterations = total // trials

    result = grand_total // trials
    if result <= 0:
        logger.warning("Calibration for %s measured nothing; using %d", backend.name, minimum)
        result = minimum
    logger.info("%s backend: %d iterations per %sms timeslice",
                backend.name, result, timeslice_ms)
    return result


def measure_pixel_cost(backend, iterations_per_timeslice, timeslice_ms=None,
                       clock=time.perf_counter, size=PIXEL_SAMPLE_SIZE):
    """
    Fixed cost of visiting one grid pixel, expressed in iterations.

    Scans rows of a grid lying wholly outside the set, where every point
    escapes on its first iteration, through the same advance() path the
    scheduler uses, until one timeslice has elapsed. Whatever the pixels
    cost beyond that single iteration is per-pixel overhead.

    Args:
        backend: Numeric backend to measure
        iterations_per_timeslice: Result of calibrate() for this backend
        timeslice_ms: Length of one timeslice in milliseconds
        clock: Function returning seconds as a float
        size: Width and height of the sample grid

    Returns:
        int iterations to charge per pixel (0 or more)
    """
    if timeslice_ms is None:
        timeslice_ms = SETTINGS['timeslice_ms']
    grid = GridComputer(size, size, backend=backend)
    grid.seed(PIXEL_SAMPLE_REGION)
    # One untimed row, so compilation and first-call setup are not measured
    grid.advance(size)

    pixels = 0
    elapsed_ms = 0.0
    started = clock()
    while not grid.complete and elapsed_ms < timeslice_ms:
        rect = grid.advance(size)
        pixels += rect.width * rect.height
        elapsed_ms = (clock() - started) * 1000.0

    if not pixels or not elapsed_ms > 0:
        return 0
    ms_per_iteration = timeslice_ms / max(1, iterations_per_timeslice)
    cost = max(0, int(math.ceil(elapsed_ms / pixels / ms_per_iteration - 1)))
    logger.info("%s backend: %d iterations charged per pixel", backend.name, cost)
    return cost


class IterationBudget:
    """
    Process-wide per-backend budgets: iterations per timeslice and the
    per-pixel charge, one entry of each per backend.

    Values are read-only once measured. Missing entries are calibrated on
    first use.

    Usage:
        budget = IterationBudget()
        budget.calibrate_all()                  # at startup
        budget.for_backend(FLOAT_BACKEND)       # -> int
        budget.pixel_cost_for(FLOAT_BACKEND)    # -> int
    """

    def __init__(self, values=None, pixel_costs=None, **calibrate_options):
        self._values = dict(values or {})
        self._pixel_costs = dict(pixel_costs or {})
        self._options = calibrate_options

    def for_backend(self, backend):
        """Iterations per timeslice for `backend`, calibrating if needed."""
        value = self._values.get(backend.name)
        if value is None:
            value = self._values[backend.name] = calibrate(backend=backend, **self._options)
        return value

    def pixel_cost_for(self, backend):
        """Per-pixel charge for `backend`, measuring it if needed."""
        cost = self._pixel_costs.get(backend.name)
        if cost is None:
            cost = self._pixel_costs[backend.name] = measure_pixel_cost(
                backend, self.for_backend(backend),
                timeslice_ms=self._options.get('timeslice_ms'),
                clock=self._options.get('clock', time.perf_counter),
            )
        return cost

    def calibrate_all(self, digits=None):
        """
        Calibrate both the float and decimal backends.

        Returns:
            dict of backend name -> (iterations per timeslice, pixel cost)
        """
        if digits is None:
            digits = SETTINGS['decimal_digits']
        for backend in (get_backend(False), get_backend(True, digits)):
            self._values.pop(backend.name, None)
            self._pixel_costs.pop(backend.name, None)
            self.pixel_cost_for(backend)
        return {name: (value, self._pixel_costs.get(name))
                for name, value in self._values.items()}

    def __repr__(self):
        return f"IterationBudget({self._values!r}, pixel_costs={self._pixel_costs!r})"
