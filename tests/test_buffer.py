"""
Tests for ring-buffer trajectories.

Validates:
1. Bulk load (longer and shorter sources, zero padding)
2. Insertion by replacement and the logical/physical index mapping
3. Durations across the wrap-around point
4. Resize, snapshot and copy
"""

import numpy as np
import pytest

from pointmass.buffer import BufferTrajectory
from pointmass.errors import InvalidArgument, OutOfRange
from pointmass.pair import Pair
from pointmass.trajectory import Trajectory


def line(n, dt=1.0):
    return Trajectory.discrete([[float(i), 0.0, 0.0] for i in range(n)], dt)


class TestConstruction:
    """Tests for capacity checks and bulk load."""

    def test_capacity_must_be_positive(self):
        with pytest.raises(InvalidArgument):
            BufferTrajectory(0)
        with pytest.raises(InvalidArgument):
            BufferTrajectory(-3)
        with pytest.raises(InvalidArgument):
            BufferTrajectory(2.5)

    def test_empty_buffer_is_zero_padded(self):
        buf = BufferTrajectory(4)
        assert buf.count == 0
        assert buf.write_index == 0
        assert len(buf) == 4
        assert all(pair.is_zero() for pair in buf)
        assert buf.duration() == 0.0

    def test_bufferize_longer_source_keeps_last_samples(self):
        buf = BufferTrajectory(3, line(5, dt=0.5))
        assert buf.write_index == 0
        assert buf.count == 3
        assert np.allclose(buf.positions[:, 0], [2, 3, 4])
        assert buf.duration() == pytest.approx(1.0)

    def test_bufferize_shorter_source_pads_front(self):
        buf = BufferTrajectory(5, line(3, dt=0.5))
        assert buf.write_index == 3
        assert buf.count == 3
        # logical order: two padding slots, then the samples
        assert np.allclose(buf.positions[:, 0], [0, 0, 0, 1, 2])
        assert buf.get(0).is_zero()
        assert buf.duration() == pytest.approx(1.0)
        assert buf.last_step == pytest.approx(0.5)

    def test_bufferize_copies_pairs(self):
        source = line(3)
        buf = BufferTrajectory(3, source)
        buf.last.position[0] = 100.0
        assert source.last.position[0] == 2.0

    def test_bufferize_from_buffer_uses_written_samples(self):
        small = BufferTrajectory(5, line(2, dt=0.25))
        big = BufferTrajectory(3, small)
        assert big.count == 2
        assert np.allclose(big.last.position, [1, 0, 0])
        assert big.last_step == pytest.approx(0.25)


class TestAdd:
    """Tests for insertion by replacement."""

    def test_add_overwrites_oldest(self):
        buf = BufferTrajectory(3, line(3))
        buf.add(Pair.vect([3, 0, 0]))
        assert buf.write_index == 1
        assert np.allclose(buf.positions[:, 0], [1, 2, 3])
        assert np.allclose(buf.first.position, [1, 0, 0])
        assert np.allclose(buf.nexto.position, [2, 0, 0])
        assert np.allclose(buf.last.position, [3, 0, 0])

    def test_ring_mapping_after_many_adds(self):
        capacity = 4
        buf = BufferTrajectory(capacity)
        for k in range(11):
            buf.add(Pair.vect([float(k), 0, 0]), dt=0.1)
            n = min(k + 1, capacity)
            assert buf.count == n
            # the last min(k+1, C) samples sit at the end, oldest first
            expected = np.arange(k + 1 - n, k + 1, dtype=float)
            assert np.allclose(buf.positions[capacity - n:, 0], expected)
            assert buf.write_index == (k + 1) % capacity

    def test_add_returns_self(self):
        buf = BufferTrajectory(2)
        assert buf.add(Pair.vect([1, 0, 0])) is buf

    def test_add_repeats_last_step(self):
        buf = BufferTrajectory(4, line(2, dt=0.3))
        buf.add(Pair.vect([2, 0, 0]))
        assert buf.last_step == pytest.approx(0.3)
        assert buf.duration() == pytest.approx(0.6)

    def test_add_default_step_on_empty(self):
        buf = BufferTrajectory(3)
        buf.add(Pair.vect([0, 0, 0]))
        buf.add(Pair.vect([1, 0, 0]))
        assert buf.last_step == 1.0
        assert buf.duration() == pytest.approx(1.0)

    def test_add_rejects_bad_step(self):
        buf = BufferTrajectory(3)
        with pytest.raises(InvalidArgument):
            buf.add(Pair.vect([0, 0, 0]), dt=0.0)

    def test_variable_steps_survive_wrap(self):
        buf = BufferTrajectory(3)
        steps = [None, 0.1, 0.2, 0.3, 0.4]
        for k, dt in enumerate(steps):
            buf.add(Pair.vect([float(k), 0, 0]), dt)
        # samples 2, 3, 4 remain, separated by 0.3 and 0.4
        assert buf.step(0) == pytest.approx(0.3)
        assert buf.step(1) == pytest.approx(0.4)
        assert buf.duration() == pytest.approx(0.7)
        assert buf.duration_from(0, 2) == pytest.approx(0.7)


class TestDuration:
    """Tests for durations over the physical wrap-around."""

    def test_duration_additive_across_wrap(self):
        buf = BufferTrajectory(5)
        for k in range(8):
            buf.add(Pair.vect([float(k), 0, 0]), dt=0.1 * (k + 1))
        assert buf.write_index == 3
        for i in range(len(buf)):
            expected = sum(buf.step(k) for k in range(i))
            assert buf.duration(i) == pytest.approx(expected)

    def test_duration_from_composes(self):
        buf = BufferTrajectory(6)
        for k in range(15):
            buf.add(Pair.vect([float(k), 0, 0]), dt=0.05 + 0.01 * k)
        for i in range(len(buf)):
            for j in range(i, len(buf)):
                assert buf.duration(i) + buf.duration_from(i, j) == pytest.approx(buf.duration(j))

    def test_first_last_nexto_match_get(self):
        buf = BufferTrajectory(4)
        for k in range(9):
            buf.add(Pair.vect([float(k), 0, 0]))
            assert buf.first is buf.get(0)
            assert buf.last is buf.get(3)
            assert buf.nexto is buf.get(2)

    def test_duration_out_of_range(self):
        buf = BufferTrajectory(3, line(3))
        with pytest.raises(OutOfRange):
            buf.duration(3)
        with pytest.raises(OutOfRange):
            buf.duration(-1)

    def test_t_and_at_agree_with_samples(self):
        buf = BufferTrajectory(4)
        for k in range(6):
            buf.add(Pair.vect([float(k), 0, 0]), dt=0.5)
        for i in range(len(buf)):
            assert np.array_equal(buf.at(i).position, buf.get(i).position)
            assert buf.t(i) == pytest.approx(buf.duration(i))
        assert np.allclose(buf.at(1.5).position, [3.5, 0, 0])
        assert buf.t(1.5) == pytest.approx(0.75)


class TestResize:
    """Tests for resize, snapshot and copy."""

    def test_shrink_keeps_newest(self):
        buf = BufferTrajectory(5, line(5, dt=0.2))
        buf.resize(2)
        assert buf.capacity == 2
        assert np.allclose(buf.positions[:, 0], [3, 4])
        assert buf.last_step == pytest.approx(0.2)

    def test_grow_keeps_everything(self):
        buf = BufferTrajectory(3, line(3))
        buf.capacity = 6
        assert buf.count == 3
        assert buf.write_index == 3
        assert np.allclose(buf.last.position, [2, 0, 0])
        buf.add(Pair.vect([3, 0, 0]))
        assert np.allclose(buf.positions[-4:, 0], [0, 1, 2, 3])

    def test_snapshot_returns_written_samples(self):
        buf = BufferTrajectory(6, line(4, dt=0.5))
        snap = buf.snapshot()
        assert isinstance(snap, Trajectory)
        assert len(snap) == 4
        assert snap.dt == [0.5, 0.5, 0.5]

    def test_copy_is_independent(self):
        buf = BufferTrajectory(3, line(3))
        other = buf.copy()
        other.add(Pair.vect([9, 0, 0]))
        assert np.allclose(buf.last.position, [2, 0, 0])
        assert other.write_index != buf.write_index

    def test_clear(self):
        buf = BufferTrajectory(3, line(3))
        buf.clear()
        assert buf.count == 0
        assert buf.duration() == 0.0

    def test_transforms_apply_to_all_slots(self):
        buf = BufferTrajectory(3, line(3))
        buf.translate([0, 1, 0])
        assert np.allclose(buf.positions[:, 1], 1.0)
        assert np.allclose(buf.relatives[:, 1], 0.0)

    def test_discrete_factory(self):
        buf = BufferTrajectory.discrete([[0, 0, 0], [1, 1, 1]], dt=0.1, capacity=4)
        assert buf.capacity == 4
        assert buf.count == 2
        assert np.allclose(buf.last.position, [1, 1, 1])
