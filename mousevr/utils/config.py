"""Session configuration helpers for mousevr."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Union

import yaml

try:  # Python 3.11+
    import tomllib  # type: ignore
except ImportError:  # pragma: no cover - fallback for older Python
    tomllib = None

from mousevr.utils._logger import get_logger

if TYPE_CHECKING:  # pragma: no cover - typing only
    from mousevr.trial import SessionParameters

logger = get_logger(__name__)

SUPPORTED_FORMATS = {".json", ".yaml", ".yml"}
if tomllib:
    SUPPORTED_FORMATS.add(".toml")

TASK_NAMES = ("alternation", "avoidance")

Schema = Dict[str, Dict[str, Any]]


# ---------------------------------------------------------------------------
# Schema definitions
# ---------------------------------------------------------------------------

SESSION_SCHEMA: Schema = {
    "subject": {"type": str, "default": "", "required": True},
    "task": {"type": str, "default": ""},
    "n_trial": {"type": int, "default": 100, "min": 0},
    "reward_amount_ul": {"type": int, "default": 10, "min": 0},
    "note": {"type": str, "default": ""},
    "com_port": {"type": str, "default": "COM4"},
    "baudrate": {"type": int, "default": 115200, "min": 1},
    "socket_host": {"type": str, "default": "127.0.0.1"},
    "socket_port": {"type": int, "default": 22223, "min": 0, "max": 65535},
    "enable_socket": {"type": bool, "default": True},
    "punishment_latency": {"type": float, "default": 2.0, "min": 0.0},
    "punishment_duration": {"type": float, "default": 6.0, "min": 0.0},
    "start_waypoint": {"type": str, "default": "10"},
    "origin_waypoint": {"type": str, "default": "0"},
    "tick_interval": {"type": float, "default": 1.0 / 60.0, "min": 0.0},
    "log_path": {"type": str, "default": ""},
    "rng_seed": {"type": int, "default": None},
}

# Treadmill/rotation tuning consumed by the renderer; carried through untouched.
MOTION_SCHEMA: Schema = {
    "allow_rotation_yaw": {"type": bool, "default": False},
    "allow_rotation_roll": {"type": bool, "default": False},
    "follow_path": {"type": bool, "default": False},
    "reverse_direction": {"type": bool, "default": False},
    "log_treadmill": {"type": bool, "default": True},
    "max_rotation_speed": {"type": float, "default": 120.0, "min": 0.0},
    "path_rotation_mix": {"type": float, "default": 0.2, "min": 0.0, "max": 1.0},
    "pitch_scale": {"type": float, "default": 0.144},
    "roll_scale": {"type": float, "default": 0.170},
    "yaw_scale": {"type": float, "default": 0.112},
    "forward_multiplier": {"type": float, "default": 1.0},
    "side_multiplier": {"type": float, "default": 1.0},
}

SCHEMAS = {
    "session": SESSION_SCHEMA,
    "motion": MOTION_SCHEMA,
}


class ConfigError(ValueError):
    """A session configuration failed validation; ``problems`` lists every issue."""

    def __init__(self, name: str, problems: List[str]) -> None:
        self.problems = list(problems)
        super().__init__(f"Invalid {name} config: " + "; ".join(self.problems))


# ---------------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------------


def _read_toml(path: Path) -> Dict[str, Any]:
    with path.open("rb") as handle:
        return tomllib.load(handle)


_READERS: Dict[str, Callable[[Path], Any]] = {
    ".json": lambda path: json.loads(path.read_text(encoding="utf-8")),
    ".yaml": lambda path: yaml.safe_load(path.read_text(encoding="utf-8")) or {},
    ".yml": lambda path: yaml.safe_load(path.read_text(encoding="utf-8")) or {},
}
if tomllib:
    _READERS[".toml"] = _read_toml


def _write_yaml(config: Dict[str, Any], path: Path) -> None:
    # keep schema order so templates read top to bottom like the schema
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(config, handle, default_flow_style=False, indent=2, sort_keys=False)


_WRITERS: Dict[str, Callable[[Dict[str, Any], Path], None]] = {
    ".json": lambda config, path: path.write_text(json.dumps(config, indent=2), encoding="utf-8"),
    ".yaml": _write_yaml,
    ".yml": _write_yaml,
}


def load_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a JSON, YAML or TOML file into a dict, picked by extension."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Session config not found: {path}")
    reader = _READERS.get(path.suffix.lower())
    if reader is None:
        raise ValueError(f"Unsupported config format '{path.suffix}'; use one of {sorted(SUPPORTED_FORMATS)}")
    return reader(path)


def save_config_file(config: Dict[str, Any], path: Union[str, Path], format_override: Optional[str] = None) -> None:
    path = Path(path)
    writer = _WRITERS.get((format_override or path.suffix or ".yaml").lower())
    if writer is None:
        raise ValueError(f"Cannot save config as '{format_override or path.suffix}'")
    path.parent.mkdir(parents=True, exist_ok=True)
    writer(config, path)


# ---------------------------------------------------------------------------
# Schema utilities
# ---------------------------------------------------------------------------

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _coerce_value(value: Any, expected_type: type) -> Any:
    if expected_type is bool and isinstance(value, str):
        token = value.strip().lower()
        if token in _TRUE or token in _FALSE:
            return token in _TRUE
        raise ValueError(f"Expected a boolean, got {value!r}")
    if expected_type is bool:
        return bool(value)
    if expected_type is int and isinstance(value, float) and not value.is_integer():
        raise ValueError(f"Expected an integer, got {value!r}")
    try:
        return expected_type(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected {expected_type.__name__}, got {value!r}") from exc


def _check_field(key: str, value: Any, meta: Dict[str, Any]) -> Optional[str]:
    low, high = meta.get("min"), meta.get("max")
    if low is not None and value < low:
        return f"'{key}' must be >= {low}, got {value}"
    if high is not None and value > high:
        return f"'{key}' must be <= {high}, got {value}"
    choices = meta.get("choices")
    if choices and value not in choices:
        return f"'{key}' must be one of {choices}, got {value!r}"
    return None


def _apply_schema(raw: Dict[str, Any], schema: Schema, name: str) -> Dict[str, Any]:
    """Fill defaults, coerce types and check bounds for every key of ``schema``.

    All problems are gathered before raising, so one run of ``validate``
    reports everything wrong with a file.
    """
    normalised: Dict[str, Any] = {}
    problems: List[str] = []
    for key, meta in schema.items():
        value = raw.get(key, meta.get("default"))
        if value is None or value == "":
            if meta.get("required"):
                problems.append(f"missing required '{key}'")
            normalised[key] = value
            continue
        try:
            value = _coerce_value(value, meta.get("type", str))
        except ValueError as exc:
            problems.append(f"'{key}': {exc}")
            continue
        problem = _check_field(key, value, meta)
        if problem:
            problems.append(problem)
        normalised[key] = value
    if problems:
        raise ConfigError(name, problems)
    return normalised


def normalise_session_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Apply the session and motion schemas to a raw mapping.

    Unknown keys are kept (and logged at debug level) so that renderer-side
    settings survive a round trip through the controller.
    """
    if not isinstance(raw, dict):
        raise ValueError(f"Session configuration must be a mapping, got {type(raw).__name__}")

    session = _apply_schema(raw, SESSION_SCHEMA, "session")
    motion = _apply_schema(raw, MOTION_SCHEMA, "motion")
    normalised = {**session, **motion}

    task = str(normalised.get("task") or "").strip().lower()
    normalised["task"] = task
    if task and task not in TASK_NAMES:
        logger.warning("Task '%s' is not recognised; zone events will be ignored", task)

    for key, value in raw.items():
        if key not in normalised:
            logger.debug("Unrecognised session config parameter '%s'", key)
            normalised[key] = value
    return normalised


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_session_config(path: Union[str, Path]) -> Dict[str, Any]:
    """Load a session configuration file with defaults and validation."""
    return normalise_session_config(load_config_file(path))


def validate_config_file(path: Union[str, Path]) -> bool:
    """Validate a session configuration file and return True on success."""
    try:
        load_session_config(path)
        return True
    except (OSError, ValueError) as exc:
        logger.error("Validation failed for %s: %s", path, exc)
        return False


def create_config_template(output_path: Union[str, Path]) -> None:
    """Write a template file containing every default value."""
    template: Dict[str, Any] = {}
    for schema in SCHEMAS.values():
        template.update({key: meta.get("default") for key, meta in schema.items()})
    template["subject"] = "mouse01"
    template["task"] = TASK_NAMES[0]
    save_config_file(template, output_path)
    logger.info("Generated session template: %s", output_path)


# ---------------------------------------------------------------------------
# Lightweight wrappers
# ---------------------------------------------------------------------------


@dataclass
class SessionConfig:
    data: Dict[str, Any]

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "SessionConfig":
        return cls(load_session_config(path))

    @classmethod
    def from_mapping(cls, raw: Dict[str, Any]) -> "SessionConfig":
        return cls(normalise_session_config(dict(raw)))

    def __getattr__(self, item: str) -> Any:  # pragma: no cover - simple delegation
        try:
            return self.data[item]
        except KeyError as exc:
            raise AttributeError(item) from exc

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        return dict(self.data)

    def motion_settings(self) -> Dict[str, Any]:
        return {key: self.data.get(key) for key in MOTION_SCHEMA}

    def parameters(self) -> "SessionParameters":
        """Freeze the fields the trial controller needs."""
        from mousevr.trial import SessionParameters

        return SessionParameters(
            subject=str(self.data.get("subject", "")),
            task=str(self.data.get("task", "")),
            n_trial=int(self.data.get("n_trial", 0)),
            reward_amount_ul=int(self.data.get("reward_amount_ul", 0)),
            note=str(self.data.get("note", "")),
        )
