"""Tests for the steady-state chain simulator."""

import pytest

from rensa.pipeline.simulate import BuffPool, SimulationState, simulate
from rensa.powers.models import SelfBuff
from tests.conftest import make_power


class TestBuffPool:
    def test_stack_mode_accumulates(self):
        pool = BuffPool()
        buff = SelfBuff(0.1, 5.0, "Stack")
        pool.apply("a", buff, now=0.0)
        pool.apply("a", buff, now=1.0)
        assert len(pool) == 2
        assert pool.total == pytest.approx(0.2)

    def test_replace_mode_supersedes_same_source(self):
        pool = BuffPool()
        pool.apply("a", SelfBuff(0.3, 5.0, "Replace"), now=0.0)
        pool.apply("b", SelfBuff(0.1, 5.0, "Stack"), now=0.0)
        pool.apply("a", SelfBuff(0.3, 5.0, "Replace"), now=2.0)
        assert len(pool) == 2
        assert pool.total == pytest.approx(0.4)
        assert max(b.expires_at for b in pool.instances if b.source == "a") == 7.0

    def test_expiry_is_inclusive(self):
        pool = BuffPool()
        pool.apply("a", SelfBuff(0.1, 3.0), now=0.0)
        pool.expire(2.999)
        assert pool
        pool.expire(3.0)
        assert not pool

    def test_no_buff_is_noop(self):
        pool = BuffPool()
        pool.apply("a", None, now=0.0)
        assert pool.total == 0


class TestSimulationState:
    def test_wait_for_advances_time(self):
        state = SimulationState(time=1.0, cooldowns={"a": 4.0})
        wait = state.wait_for(make_power("a"))
        assert wait == 3.0
        assert state.time == 4.0

    def test_activate_starts_recharge_at_activation(self):
        state = SimulationState(time=2.0)
        state.activate(make_power("a", duration=1.5, recharge=6.0), latency=0.5)
        assert state.cooldowns["a"] == 8.0
        assert state.time == 4.0


class TestSimulate:
    def test_empty_chain(self):
        assert simulate([]) is None

    def test_plain_chain_without_buffs(self):
        a = make_power("a", duration=1.0, recharge=2.0, value=10.0)
        b = make_power("b", duration=1.0, recharge=2.0, value=30.0)
        result = simulate([a, b])
        assert result.total_value == 40.0
        assert result.cycle_time == 2.0
        assert result.throughput == 20.0
        assert result.avg_multiplier == 1.0
        assert result.total_wait == 0.0
        assert result.slugs == ["a", "b"]

    def test_warmup_reaches_stacked_state(self):
        """Three warm-up passes let buffs pile up before measuring."""
        a = make_power(
            "a", duration=1.0, recharge=1.0, value=100.0, buff=(0.1, 3.05, "Stack"),
        )
        result = simulate([a])
        assert result.steps[0].multiplier == pytest.approx(1.3)
        assert result.total_value == pytest.approx(130.0)

        cold = simulate([a], warmup_cycles=0)
        assert cold.steps[0].multiplier == 1.0

    def test_buff_expiring_at_activation_does_not_count(self):
        a = make_power(
            "a", duration=1.0, recharge=1.0, value=100.0, buff=(0.1, 3.0, "Stack"),
        )
        result = simulate([a])
        # the instance from t=0 expires exactly at t=3
        assert result.steps[0].multiplier == pytest.approx(1.2)

    def test_replace_mode_keeps_single_instance(self):
        a = make_power(
            "a", duration=1.0, recharge=1.0, value=100.0, buff=(0.5, 10.0, "Replace"),
        )
        result = simulate([a])
        assert result.steps[0].multiplier == pytest.approx(1.5)

    def test_buffs_from_other_powers_stack(self):
        a = make_power("a", duration=1.0, recharge=1.0, value=0.0, buff=(0.25, 10.0, "Replace"))
        b = make_power("b", duration=1.0, recharge=1.0, value=100.0)
        result = simulate([a, b])
        assert result.steps[1].multiplier == pytest.approx(1.25)
        assert result.steps[1].value == pytest.approx(125.0)

    def test_cycle_time_matches_cast_time_when_feasible(self):
        a = make_power("a", duration=1.0, recharge=2.0)
        b = make_power("b", duration=1.5, recharge=2.0)
        for warmup in (0, 3, 6):
            result = simulate([a, b], latency=0.25, warmup_cycles=warmup)
            assert result.cycle_time == pytest.approx(3.0)
            assert result.total_wait == 0.0

    def test_induced_wait_is_measured(self):
        a = make_power("a", duration=1.0, recharge=4.0, value=40.0)
        result = simulate([a])
        assert result.total_wait == pytest.approx(3.0)
        assert result.steps[0].wait_before == pytest.approx(3.0)
        assert result.cycle_time == pytest.approx(4.0)
        assert result.throughput == pytest.approx(10.0)

    def test_timeline_is_relative_to_measurement_pass(self):
        a = make_power("a", duration=1.0, recharge=2.0)
        b = make_power("b", duration=1.0, recharge=2.0)
        result = simulate([a, b], latency=0.5)
        assert [s.start for s in result.steps] == [0.0, 1.5]
        assert result.steps[1].end == 2.5

    def test_resource_rate(self):
        a = make_power("a", duration=1.0, recharge=1.0, resource_cost=5.0)
        result = simulate([a, a])
        assert result.resource_rate == pytest.approx(5.0)

    def test_degenerate_duration_is_discarded(self):
        a = make_power("a", duration=0.0, recharge=0.0)
        assert simulate([a]) is None

    def test_avg_multiplier_is_mean_of_steps(self):
        a = make_power("a", duration=1.0, recharge=1.0, value=0.0, buff=(0.2, 1.5, "Replace"))
        b = make_power("b", duration=1.0, recharge=1.0, value=10.0)
        result = simulate([a, b])
        assert result.avg_multiplier == pytest.approx(
            sum(s.multiplier for s in result.steps) / 2
        )
