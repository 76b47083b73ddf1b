import numpy as np

from mandelbot.calibrate import IterationBudget
from mandelbot.grid import DirtyRect, GridComputer, PlaneRegion
from mandelbot.numeric import FLOAT_BACKEND
from mandelbot.scheduler import IdleQueue, Scheduler


class FakeGrid:
    """Grid that needs `work` advance() calls and logs every call."""

    backend = FLOAT_BACKEND

    def __init__(self, name, work, log):
        self.name = name
        self.work = work
        self.log = log
        self.pixel_cost = None

    def advance(self, budget, pixel_cost=0):
        self.log.append((self.name, budget))
        self.pixel_cost = pixel_cost
        if self.work <= 0:
            return None
        self.work -= 1
        return DirtyRect(0, 0, 1, 1)


def fixed_budget(iterations, pixel_cost=0):
    return IterationBudget({'float': iterations}, pixel_costs={'float': pixel_cost})


def names(log):
    return [name for name, _ in log]


def test_idle_queue_runs_only_callbacks_queued_before_the_call():
    idle = IdleQueue()
    calls = []

    def requeue():
        calls.append('requeue')
        idle.call_soon(requeue)

    idle.call_soon(requeue)
    assert idle.run_pending() == 1
    assert calls == ['requeue']
    assert idle.run_pending() == 1
    assert calls == ['requeue', 'requeue']


def test_add_arms_once(idle):
    log = []
    scheduler = Scheduler(fixed_budget(90), idle.call_soon)
    scheduler.add(FakeGrid('a', 3, log))
    scheduler.add(FakeGrid('b', 3, log))
    assert scheduler.state.armed
    assert idle.run_pending() == 1
    assert names(log) == ['a', 'b']


def test_every_grid_is_served_each_tick_with_split_budget(idle):
    log = []
    scheduler = Scheduler(fixed_budget(90), idle.call_soon)
    for name in 'abc':
        scheduler.add(FakeGrid(name, 10, log))

    idle.run_pending()
    assert sorted(names(log)) == ['a', 'b', 'c']
    assert all(budget == 30 for _, budget in log)


def test_start_position_rotates(idle):
    log = []
    scheduler = Scheduler(fixed_budget(90), idle.call_soon)
    for name in 'abc':
        scheduler.add(FakeGrid(name, 10, log))

    for _ in range(4):
        idle.run_pending()
    assert names(log) == list('abc' 'bca' 'cab' 'abc')


def test_fair_share_over_many_ticks(idle):
    log = []
    scheduler = Scheduler(fixed_budget(90), idle.call_soon)
    for name in 'abc':
        scheduler.add(FakeGrid(name, 100, log))

    for _ in range(30):
        idle.run_pending()
    counts = [names(log).count(name) for name in 'abc']
    assert counts == [30, 30, 30]


def test_per_grid_budget_is_at_least_one(idle):
    log = []
    scheduler = Scheduler(fixed_budget(2), idle.call_soon)
    for name in 'abc':
        scheduler.add(FakeGrid(name, 1, log))
    idle.run_pending()
    assert [budget for _, budget in log] == [1, 1, 1]


def test_goes_idle_once_all_grids_are_done(idle):
    log = []
    scheduler = Scheduler(fixed_budget(10), idle.call_soon)
    scheduler.add(FakeGrid('a', 1, log))
    scheduler.add(FakeGrid('b', 3, log))

    ticks = 0
    while idle.run_pending():
        ticks += 1
    # Three ticks with progress, then one that finds nothing left to do
    assert ticks == 4
    assert not scheduler.state.armed
    assert scheduler.state.ticks == 4


def test_rearm_after_idle(idle):
    log = []
    scheduler = Scheduler(fixed_budget(10), idle.call_soon)
    grid = FakeGrid('a', 1, log)
    scheduler.add(grid)
    while idle.run_pending():
        pass
    assert not scheduler.state.armed

    grid.work = 2
    scheduler.arm()
    scheduler.arm()
    assert idle.run_pending() == 1
    assert grid.work == 1
    while idle.run_pending():
        pass
    assert grid.work == 0


def test_removed_grid_gets_no_more_calls(idle):
    log = []
    scheduler = Scheduler(fixed_budget(20), idle.call_soon)
    a = FakeGrid('a', 10, log)
    b = FakeGrid('b', 10, log)
    scheduler.add(a)
    scheduler.add(b)
    idle.run_pending()

    scheduler.remove(b)
    scheduler.remove(b)
    del log[:]
    idle.run_pending()
    idle.run_pending()
    assert names(log) == ['a', 'a']
    assert log[0][1] == 20
    assert scheduler.grids == [a]


def test_shutdown_turns_queued_tick_into_noop(idle):
    log = []
    scheduler = Scheduler(fixed_budget(20), idle.call_soon)
    scheduler.add(FakeGrid('a', 10, log))
    scheduler.shutdown()
    idle.run_pending()
    assert log == []
    assert idle.run_pending() == 0


def test_grid_added_during_a_tick_waits_for_the_next(idle):
    log = []
    scheduler = Scheduler(fixed_budget(20), idle.call_soon)
    late = FakeGrid('late', 5, log)

    class Spawner(FakeGrid):
        def advance(self, budget, pixel_cost=0):
            scheduler.add(late)
            return super().advance(budget, pixel_cost)

    scheduler.add(Spawner('spawner', 5, log))
    idle.run_pending()
    assert names(log) == ['spawner']
    idle.run_pending()
    assert 'late' in names(log)


def test_scheduled_grids_match_direct_computation(idle):
    regions = [PlaneRegion(-0.5, 0.0, 1.5, 1.5), PlaneRegion(-0.75, 0.1, 0.05, 0.05)]
    scheduled = []
    scheduler = Scheduler(fixed_budget(500), idle.call_soon)
    for region in regions:
        grid = GridComputer(24, 16)
        grid.seed(region)
        scheduled.append(grid)
        scheduler.add(grid)

    while idle.run_pending():
        pass

    for grid, region in zip(scheduled, regions):
        assert grid.complete
        direct = GridComputer(24, 16)
        direct.seed(region)
        direct.advance()
        np.testing.assert_array_equal(grid.pixels, direct.pixels)


def test_grids_are_charged_the_calibrated_pixel_cost(idle):
    log = []
    scheduler = Scheduler(fixed_budget(90, pixel_cost=7), idle.call_soon)
    grid = FakeGrid('a', 3, log)
    scheduler.add(grid)
    idle.run_pending()
    assert log == [('a', 90)]
    assert grid.pixel_cost == 7
