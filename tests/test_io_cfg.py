"""
Tests for configuration loading, output files and the command-line runner.

Validates:
1. YAML loading (steps/duration, bodies metadata, outputs)
2. Validation errors and warnings
3. CSV / flat trajectory / JSON writers
4. End-to-end CLI run on the example configuration
"""

import json
import textwrap

import numpy as np
import pytest

from pointmass.buffer import BufferTrajectory
from pointmass.io_cfg import (
    create_example_config,
    load_config,
    load_trajectory_1d,
    save_history_csv,
    save_summary_json,
    save_trajectory_1d,
    validate_config,
)
from pointmass.run import main
from pointmass.trajectory import Trajectory


def write_config(tmp_path, text, name="config.yaml"):
    path = tmp_path / name
    path.write_text(textwrap.dedent(text))
    return path


TWO_BODY = """
    numerics:
      dt: 0.01
      steps: 50
      capacity: 16
      save_every: 5
    field:
      type: gravity
      G: 1.0
      softening: 0.0
    bodies:
      - name: heavy
        mass: 1.0
        x: [0.0, 0.0, 0.0]
      - name: light
        mass: 0.001
        x: [1.0, 0.0, 0.0]
        v: [0.0, 1.0, 0.0]
        charge: 2.0
    outputs:
      write_csv: true
      write_json: true
"""


class TestLoadConfig:
    """Tests for load_config."""

    def test_load_two_body(self, tmp_path):
        config = load_config(write_config(tmp_path, TWO_BODY))
        assert config['numerics'] == {'dt': 0.01, 'steps': 50, 'capacity': 16, 'save_every': 5}
        assert [body.name for body in config['bodies']] == ['heavy', 'light']
        light = config['bodies'][1]
        assert light.trajectory.capacity == 16
        assert np.allclose(light.speed, [0, 1, 0])
        assert light.data == {'charge': 2.0}
        assert config['field_params']['type'] == 'gravity'
        assert callable(config['field'])

    def test_duration_instead_of_steps(self, tmp_path):
        text = TWO_BODY.replace("steps: 50", "duration: 0.3")
        config = load_config(write_config(tmp_path, text))
        assert config['numerics']['steps'] == 30

    def test_defaults(self, tmp_path):
        text = """
            numerics:
              dt: 0.1
              steps: 3
            field:
              type: spring
              stiffness: 1.0
            bodies:
              - name: a
                mass: 1.0
                x: [0, 0, 0]
        """
        config = load_config(write_config(tmp_path, text))
        assert config['numerics']['capacity'] == 1024
        assert config['numerics']['save_every'] == 1
        assert config['outputs'] == {'write_csv': True, 'write_json': True}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_missing_section(self, tmp_path):
        text = TWO_BODY.split("bodies:")[0]
        with pytest.raises(KeyError):
            load_config(write_config(tmp_path, text))

    def test_missing_steps_and_duration(self, tmp_path):
        text = TWO_BODY.replace("steps: 50", "")
        with pytest.raises(KeyError):
            load_config(write_config(tmp_path, text))

    def test_body_missing_mass(self, tmp_path):
        text = TWO_BODY.replace("mass: 0.001", "")
        with pytest.raises(KeyError, match="Body 1"):
            load_config(write_config(tmp_path, text))

    def test_bad_body_vector(self, tmp_path):
        text = TWO_BODY.replace("x: [1.0, 0.0, 0.0]", "x: [1.0, 0.0]")
        with pytest.raises(ValueError, match="light"):
            load_config(write_config(tmp_path, text))

    def test_unknown_field(self, tmp_path):
        text = TWO_BODY.replace("type: gravity", "type: vortex")
        with pytest.raises(ValueError):
            load_config(write_config(tmp_path, text))

    def test_empty_file(self, tmp_path):
        with pytest.raises(ValueError):
            load_config(write_config(tmp_path, ""))


class TestValidateConfig:
    """Tests for validate_config."""

    def test_valid(self, tmp_path):
        is_valid, messages = validate_config(load_config(write_config(tmp_path, TWO_BODY)))
        assert is_valid
        assert messages == []

    def test_capacity_too_small(self, tmp_path):
        text = TWO_BODY.replace("capacity: 16", "capacity: 1")
        is_valid, messages = validate_config(load_config(write_config(tmp_path, text)))
        assert not is_valid
        assert any("capacity" in m for m in messages)

    def test_duplicate_names(self, tmp_path):
        text = TWO_BODY.replace("name: light", "name: heavy")
        is_valid, messages = validate_config(load_config(write_config(tmp_path, text)))
        assert not is_valid
        assert any("duplicate" in m for m in messages)

    def test_coincident_bodies_warn(self, tmp_path):
        text = TWO_BODY.replace("x: [1.0, 0.0, 0.0]", "x: [0.0, 0.0, 0.0]")
        is_valid, messages = validate_config(load_config(write_config(tmp_path, text)))
        assert is_valid
        assert any(m.startswith("WARNING") and "coincide" in m for m in messages)

    def test_save_every_larger_than_run(self, tmp_path):
        text = TWO_BODY.replace("save_every: 5", "save_every: 500")
        is_valid, messages = validate_config(load_config(write_config(tmp_path, text)))
        assert is_valid
        assert any("save_every" in m for m in messages)


class TestWriters:
    """Tests for output files."""

    def test_history_csv(self, tmp_path):
        history = {
            't': np.array([0.0, 0.5]),
            'x': np.arange(12, dtype=float).reshape(2, 2, 3),
            'v': np.zeros((2, 2, 3)),
            'M': np.array([1.0, 2.0]),
        }
        path = tmp_path / "out" / "history.csv"
        save_history_csv(str(path), history, ["a", "b"])
        lines = path.read_text().splitlines()
        assert lines[0] == "time,body_name,x,y,z,vx,vy,vz,M"
        assert len(lines) == 5
        fields = lines[4].split(",")
        assert fields[1] == "b"
        assert float(fields[2]) == 9.0
        assert float(fields[8]) == 2.0

    def test_trajectory_1d_file(self, tmp_path):
        buf = BufferTrajectory(3, Trajectory.circular(origin=[0, 0, 2], dt=0.2))
        path = tmp_path / "gamma.txt"
        save_trajectory_1d(str(path), buf)
        back = load_trajectory_1d(str(path), dt=0.2)
        assert len(back) == 3
        assert np.allclose(back.positions, buf.positions)
        assert np.allclose(back.origins, buf.origins)

    def test_summary_json(self, tmp_path):
        path = tmp_path / "summary.json"
        save_summary_json(str(path), {
            'n': np.int64(3),
            'x': np.array([1.0, 2.0]),
            'nested': {'flag': np.bool_(True)},
        })
        data = json.loads(path.read_text())
        assert data == {'n': 3, 'x': [1.0, 2.0], 'nested': {'flag': True}}

    def test_summary_json_warns_on_nan(self, tmp_path):
        with pytest.warns(RuntimeWarning):
            save_summary_json(str(tmp_path / "summary.json"), {'drift': float('nan')})

    def test_example_config_loads(self, tmp_path):
        path = tmp_path / "example.yaml"
        create_example_config(str(path))
        config = load_config(path)
        is_valid, _ = validate_config(config)
        assert is_valid
        assert len(config['bodies']) == 2


class TestCli:
    """Tests for the command-line runner."""

    def test_validate_only(self, tmp_path, capsys):
        path = write_config(tmp_path, TWO_BODY)
        assert main([str(path), '--validate-only']) == 0
        assert "validated successfully" in capsys.readouterr().out

    def test_invalid_config_fails(self, tmp_path):
        path = write_config(tmp_path, TWO_BODY.replace("capacity: 16", "capacity: 1"))
        assert main([str(path), '--validate-only']) == 1

    def test_missing_config(self, tmp_path):
        assert main([str(tmp_path / "missing.yaml")]) == 1

    def test_full_run_writes_outputs(self, tmp_path):
        path = write_config(tmp_path, TWO_BODY)
        out = tmp_path / "results"
        assert main([str(path), '--output-dir', str(out), '--table-rows', '4']) == 0
        assert (out / "history.csv").exists()
        assert (out / "trajectory_heavy.txt").exists()
        assert (out / "trajectory_light.txt").exists()
        summary = json.loads((out / "summary.json").read_text())
        assert summary['n_bodies'] == 2
        assert summary['n_saved'] == 11
        assert summary['t_final'] == pytest.approx(0.5)
        assert summary['barycenter_drift'] < 1e-9

    def test_example_flag(self, tmp_path):
        path = tmp_path / "two_body.yaml"
        assert main(['--example', str(path)]) == 0
        assert path.exists()
