import numpy as np
import pytest

from diffusim.agents import Agent, AgentStore, SpaceBounds
from diffusim.behaviors import BehaviorModule, Chemotaxis, GeneRegulation, GrowDivide
from diffusim.core.errors import ConfigurationError, NumericalInstabilityError, UnknownSubstanceError
from diffusim.engine.scheduler import Scheduler, SchedulerState
from diffusim.fields import GaussianBand, SubstanceField


class Probe(BehaviorModule):
    """Records what it observes each time it runs."""

    kind = "probe"

    def __init__(self, label, log, field_id=None):
        self.label = label
        self.log = log
        self.field_id = field_id

    def run(self, agent, context):
        total = None
        if self.field_id is not None:
            total = context.fields[self.field_id].total_concentration()
        self.log.append((context.step, agent.uid, self.label, total))


def _field(substance_id=0, decay=0.0):
    field = SubstanceField(substance_id, f"s{substance_id}", 1.0, decay, 6, upper=6.0, time_step=0.1)
    field.initialize(GaussianBand(3.0, 1.0, "x", amplitude=10.0))
    return field


def test_state_machine_and_step_count():
    scheduler = Scheduler([_field()], [Agent(position=[1.0, 1.0, 1.0])], time_step=0.1)
    assert scheduler.state is SchedulerState.IDLE
    scheduler.simulate(5)
    assert scheduler.state is SchedulerState.COMPLETED
    assert scheduler.get_simulated_steps() == 5
    assert scheduler.simulated_time == pytest.approx(0.5)
    scheduler.simulate(3)
    assert scheduler.get_simulated_steps() == 8
    scheduler.simulate(0)
    assert scheduler.get_simulated_steps() == 8


def test_fields_registered_at_construction():
    fields = [_field(0), _field(1)]
    scheduler = Scheduler(fields, time_step=0.1)
    assert scheduler.state is SchedulerState.IDLE
    assert scheduler.get_field(1) is fields[1]
    scheduler.add_field(_field(2))
    assert sorted(scheduler.fields) == [0, 1, 2]


def test_field_time_step_must_match_scheduler():
    with pytest.raises(ConfigurationError):
        Scheduler([_field()], time_step=0.05)
    scheduler = Scheduler(time_step=0.05)
    with pytest.raises(ConfigurationError):
        scheduler.add_field(_field())
    assert scheduler.fields == {}


def test_negative_steps_rejected():
    with pytest.raises(ValueError):
        Scheduler().simulate(-1)


def test_diffusion_precedes_behaviors_each_step():
    log = []
    field = _field(decay=0.5)
    scheduler = Scheduler([field], [Agent(position=[1.0, 1.0, 1.0], behaviors=[Probe("p", log, 0)])], time_step=0.1)
    expected = []
    scheduler.simulate(3, on_step=lambda s: expected.append(field.total_concentration()))
    assert [entry[3] for entry in log] == pytest.approx(expected)


def test_modules_run_in_registration_order():
    log = []
    agent = Agent(position=[1.0, 1.0, 1.0], behaviors=[Probe("a", log), Probe("b", log), Probe("c", log)])
    Scheduler([], [agent]).simulate(2)
    assert [label for _, _, label, _ in log] == ["a", "b", "c", "a", "b", "c"]
    assert [step for step, _, _, _ in log] == [0, 0, 0, 1, 1, 1]


def test_division_is_committed_after_the_behavior_phase():
    log = []
    parent = Agent(position=[500.0, 500.0, 500.0], diameter=9.9, behaviors=[GrowDivide(0.5, 10.0), Probe("p", log)])
    scheduler = Scheduler([], AgentStore([parent]), seed=3)
    scheduler.simulate(1)
    # the child exists after the step but did not run during it
    assert len(scheduler.agents) == 2
    assert [uid for _, uid, _, _ in log] == [0]
    scheduler.simulate(1)
    assert sorted(uid for step, uid, _, _ in log if step == 1) == [0, 1]


def test_gene_regulation_receives_simulated_time():
    genes = GeneRegulation()
    genes.add_gene(lambda t, c: t, 0.0)
    scheduler = Scheduler([], [Agent(position=[0.0, 0.0, 0.0], behaviors=[genes])], time_step=0.25)
    scheduler.simulate(4)
    # last call happened at step 3
    assert genes.get_concentrations() == (0.75,)


def test_unknown_substance_fails_before_start():
    agent = Agent(position=[0.0, 0.0, 0.0], behaviors=[Chemotaxis([(0, 1.0), (5, 1.0)])])
    field = _field()
    scheduler = Scheduler([field], [agent], time_step=0.1)
    before = field.concentrations.copy()
    with pytest.raises(UnknownSubstanceError) as info:
        scheduler.simulate(10)
    assert info.value.substance_id == 5
    assert scheduler.state is SchedulerState.IDLE
    assert scheduler.get_simulated_steps() == 0
    assert np.array_equal(field.concentrations, before)


def test_duplicate_substance_ids_rejected():
    with pytest.raises(ConfigurationError):
        Scheduler([_field(0), _field(0)], time_step=0.1)
    with pytest.raises(UnknownSubstanceError):
        Scheduler([_field(0)], time_step=0.1).get_field(1)


def test_numerical_failure_aborts_run():
    field = _field()
    scheduler = Scheduler([field], [Agent(position=[0.0, 0.0, 0.0])], time_step=0.1)
    scheduler.simulate(2)
    field.diffusion_coefficient = 1e6
    with pytest.raises(NumericalInstabilityError) as info:
        scheduler.simulate(5)
    assert info.value.step == 2
    assert scheduler.state is SchedulerState.ABORTED
    with pytest.raises(RuntimeError):
        scheduler.simulate(1)


def _population_scheduler(workers: int) -> Scheduler:
    fields = [_field(0), _field(1)]
    rng = np.random.default_rng(11)
    bounds = SpaceBounds(0.0, 6.0)
    agents = []
    for i in range(24):
        genes = GeneRegulation()
        genes.add_gene(lambda t, c: 0.5 * c + t, float(i))
        agents.append(
            Agent(
                position=rng.uniform(0.0, 6.0, size=3),
                diameter=1.0 + 0.01 * i,
                behaviors=[genes, Chemotaxis([(0, 0.05), (1, -0.02)]), GrowDivide(0.01, 1.3, max_active_steps=60)],
                bounds=bounds,
            )
        )
    return Scheduler(fields, agents, time_step=0.1, workers=workers, seed=42)


def test_parallel_run_matches_serial_run():
    serial = _population_scheduler(workers=1)
    threaded = _population_scheduler(workers=4)
    serial.simulate(80)
    threaded.simulate(80)
    assert len(serial.agents) == len(threaded.agents) > 24
    for a, b in zip(serial.agents, threaded.agents):
        assert a.uid == b.uid
        assert np.array_equal(a.position, b.position)
        assert a.diameter == b.diameter
        assert a.behaviors[0].get_concentrations() == b.behaviors[0].get_concentrations()
    for sid in (0, 1):
        assert np.array_equal(serial.get_field(sid).concentrations, threaded.get_field(sid).concentrations)


def test_fast_growth_divides_below_threshold():
    parent = Agent(position=[500.0, 500.0, 500.0], diameter=9.0, behaviors=[GrowDivide(5.0, 10.0)])
    scheduler = Scheduler([], [parent], seed=1)
    scheduler.simulate(1)
    assert len(scheduler.agents) == 2
    for agent in scheduler.agents:
        assert agent.diameter < 10.0
    assert scheduler.rejected_divisions == []


def test_oversized_agent_division_is_rejected():
    agent = Agent(position=[500.0, 500.0, 500.0], diameter=50.0, behaviors=[GrowDivide(0.02, 35.0)])
    scheduler = Scheduler([], [agent])
    scheduler.simulate(2)
    assert len(scheduler.agents) == 1
    assert agent.diameter == 50.0
    assert [exc.uid for exc in scheduler.rejected_divisions] == [0, 0]
    assert scheduler.state is SchedulerState.COMPLETED
