"""Configuration and I/O module for the point-mass simulator.

This module provides:
- YAML configuration loading and validation
- Example config generation
- CSV output for recorded histories
- Flat-array (to_1d) text files for single trajectories
- JSON output for run summaries
"""

from typing import Any, Dict, List, Tuple
import json
from pathlib import Path
import warnings

import numpy as np
import yaml

from pointmass.bodies import Body
from pointmass.fields import make_pairwise_field
from pointmass.timer import Timer
from pointmass.trajectory import Curve, Steps, Trajectory

BODY_KEYS = ("name", "mass", "x", "v")


def _section(raw_config: Dict[str, Any], name: str) -> Any:
    if name not in raw_config:
        raise KeyError(f"Configuration missing required section '{name}'")
    return raw_config[name]


def _parse_numerics(numerics_cfg: Dict[str, Any]) -> Dict[str, Any]:
    dt = float(numerics_cfg['dt'])
    if 'steps' in numerics_cfg:
        steps = int(numerics_cfg['steps'])
    elif 'duration' in numerics_cfg:
        steps = Timer(dt).steps_for(float(numerics_cfg['duration']))
    else:
        raise KeyError("Section 'numerics' needs either 'steps' or 'duration'")
    return {
        'dt': dt,
        'steps': steps,
        'capacity': int(numerics_cfg.get('capacity', 1024)),
        'save_every': int(numerics_cfg.get('save_every', 1)),
    }


def _parse_body(i: int, body_cfg: Dict[str, Any], capacity: int) -> Body:
    """One entry of ``bodies``; keys other than name/mass/x/v go to ``Body.data``."""
    try:
        data = {key: value for key, value in body_cfg.items() if key not in BODY_KEYS}
        return Body.create(
            str(body_cfg['name']),
            float(body_cfg['mass']),
            body_cfg['x'],
            body_cfg.get('v', [0.0, 0.0, 0.0]),
            capacity=capacity,
            data=data,
        )
    except KeyError as e:
        raise KeyError(f"Body {i} missing required field {e}")
    except (ValueError, TypeError) as e:
        raise ValueError(f"Body {i} ('{body_cfg.get('name', 'unnamed')}'): {e}")


def load_config(yaml_path: str) -> Dict[str, Any]:
    """Read a run description from YAML.

    Parameters
    ----------
    yaml_path : str
        Path of the YAML file.

    Returns
    -------
    dict
        - 'bodies': list of Body, each with a buffer of ``numerics.capacity``
        - 'field': pairwise field callable built by ``make_pairwise_field``
        - 'field_params': the raw ``field`` mapping
        - 'numerics': dt, steps, capacity, save_every
        - 'outputs': write_csv, write_json

    Raises
    ------
    FileNotFoundError
        Missing file.
    KeyError
        Missing section or required field.
    ValueError
        Empty file or invalid values (bad vectors, unknown field type, ...).

    Notes
    -----
    ``numerics`` takes either ``steps`` or ``duration``; a duration is turned
    into ``ceil(duration / dt)`` steps, as ``Timer.advance`` does.

    Examples
    --------
    >>> config = load_config("two_body.yaml")
    >>> len(config['bodies']), config['numerics']['dt']
    (2, 0.001)
    """
    yaml_path = Path(yaml_path)
    if not yaml_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

    with open(yaml_path, 'r') as f:
        raw_config = yaml.safe_load(f)
    if raw_config is None:
        raise ValueError(f"Empty or invalid YAML file: {yaml_path}")

    numerics = _parse_numerics(_section(raw_config, 'numerics'))

    field_params = dict(_section(raw_config, 'field'))
    field = make_pairwise_field(field_params)

    bodies_cfg = _section(raw_config, 'bodies')
    if not isinstance(bodies_cfg, list) or len(bodies_cfg) == 0:
        raise ValueError("Configuration 'bodies' must be a non-empty list")
    bodies = [_parse_body(i, body_cfg, numerics['capacity']) for i, body_cfg in enumerate(bodies_cfg)]

    outputs_cfg = raw_config.get('outputs') or {}
    outputs = {key: bool(outputs_cfg.get(key, True)) for key in ('write_csv', 'write_json')}

    return {
        'bodies': bodies,
        'field': field,
        'field_params': field_params,
        'numerics': numerics,
        'outputs': outputs,
    }


def validate_config(config: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Validate configuration for consistency and numerical sanity.

    Checks:
    - positive dt, non-negative steps, capacity of at least 2
    - unique body names
    - coincident bodies without softening (degenerate field)
    - save_every larger than the run

    Parameters
    ----------
    config : dict
        Configuration dictionary from load_config().

    Returns
    -------
    is_valid : bool
        True if configuration passes all checks (may still have warnings).
    warnings_list : list of str
        Messages; errors are prefixed with "ERROR:", warnings with "WARNING:".
    """
    warnings_list = []
    is_valid = True

    numerics = config['numerics']
    bodies = config['bodies']

    if numerics['dt'] <= 0:
        warnings_list.append(f"ERROR: dt must be positive, got {numerics['dt']}")
        is_valid = False
    if numerics['steps'] < 0:
        warnings_list.append(f"ERROR: steps must be non-negative, got {numerics['steps']}")
        is_valid = False
    if numerics['capacity'] < 2:
        warnings_list.append(
            f"ERROR: capacity must be at least 2 for two-step integration, got {numerics['capacity']}"
        )
        is_valid = False
    if numerics['save_every'] <= 0:
        warnings_list.append(f"ERROR: save_every must be positive, got {numerics['save_every']}")
        is_valid = False
    elif numerics['save_every'] > max(numerics['steps'], 1):
        warnings_list.append(
            f"WARNING: save_every={numerics['save_every']} exceeds steps={numerics['steps']}, "
            "only the initial state will be saved"
        )

    names = [body.name for body in bodies]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        warnings_list.append(f"ERROR: duplicate body names {duplicates}")
        is_valid = False

    softening = float(config.get('field_params', {}).get('softening', 0.0))
    for i in range(len(bodies)):
        for j in range(i + 1, len(bodies)):
            r = np.linalg.norm(bodies[i].position - bodies[j].position)
            if r == 0.0 and softening == 0.0:
                warnings_list.append(
                    f"WARNING: bodies '{bodies[i].name}' and '{bodies[j].name}' coincide; "
                    "the field will produce NaN (add softening)"
                )

    return is_valid, warnings_list


def create_example_config(output_path: str) -> None:
    """Write an example configuration: a circular two-body orbit."""
    example = {
        'numerics': {
            'dt': 0.001,
            'steps': 6284,
            'capacity': 1024,
            'save_every': 10,
        },
        'field': {
            'type': 'gravity',
            'G': 1.0,
            'softening': 0.0,
        },
        'bodies': [
            {'name': 'primary', 'mass': 1.0, 'x': [0.0, 0.0, 0.0], 'v': [0.0, -0.001, 0.0]},
            {'name': 'satellite', 'mass': 0.001, 'x': [1.0, 0.0, 0.0], 'v': [0.0, 1.0, 0.0]},
        ],
        'outputs': {
            'write_csv': True,
            'write_json': True,
        },
    }
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w') as f:
        f.write("# Two-body circular orbit, one period with G = 1\n")
        yaml.safe_dump(example, f, sort_keys=False)
    print(f"Created example configuration: {output_path}")


def save_history_csv(filepath: str, history: Dict[str, np.ndarray], names: List[str]) -> None:
    """Save a recorded history to CSV.

    Writes columns: time, body_name, x, y, z, vx, vy, vz, M. Each row
    corresponds to one body at one recorded step.
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    times, positions, speeds, masses = history['t'], history['x'], history['v'], history['M']
    with open(filepath, 'w') as f:
        f.write("time,body_name,x,y,z,vx,vy,vz,M\n")
        for t, x_row, v_row in zip(times, positions, speeds):
            for name, x, v, M in zip(names, x_row, v_row, masses):
                f.write(
                    f"{t:.15e},{name},"
                    f"{x[0]:.15e},{x[1]:.15e},{x[2]:.15e},"
                    f"{v[0]:.15e},{v[1]:.15e},{v[2]:.15e},"
                    f"{M:.15e}\n"
                )

    print(f"Saved {len(times) * len(names)} states "
          f"({len(times)} snapshots × {len(names)} bodies) to {filepath}")


def save_trajectory_1d(filepath: str, trajectory: Curve) -> None:
    """Write ``trajectory.to_1d()`` as one value per line."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    np.savetxt(filepath, trajectory.to_1d())


def load_trajectory_1d(filepath: str, dt: Steps = 1.0) -> Trajectory:
    """Read a file written by ``save_trajectory_1d``."""
    return Trajectory.from_1d(np.loadtxt(filepath, ndmin=1), dt)


def save_summary_json(filepath: str, summary: Dict[str, Any]) -> None:
    """Save a run summary to JSON; numpy arrays and scalars become lists/floats."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    def convert_to_json_serializable(obj):
        """Recursively convert numpy arrays to lists."""
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        elif isinstance(obj, dict):
            return {key: convert_to_json_serializable(val) for key, val in obj.items()}
        elif isinstance(obj, (list, tuple)):
            return [convert_to_json_serializable(item) for item in obj]
        elif isinstance(obj, (np.integer, np.floating, np.bool_)):
            return obj.item()
        else:
            return obj

    serializable = convert_to_json_serializable(summary)
    if any(isinstance(v, float) and not np.isfinite(v) for v in _flatten(serializable)):
        warnings.warn(
            f"Summary written to {filepath} holds non-finite values",
            RuntimeWarning
        )

    with open(filepath, 'w') as f:
        json.dump(serializable, f, indent=2)

    print(f"Saved summary to {filepath} ({len(summary)} top-level keys)")


def _flatten(obj):
    if isinstance(obj, dict):
        for value in obj.values():
            yield from _flatten(value)
    elif isinstance(obj, list):
        for item in obj:
            yield from _flatten(item)
    else:
        yield obj
