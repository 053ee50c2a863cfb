"""
Run configuration.

Values are layered, later layers winning:

1. built-in defaults (``RunConfig`` field defaults)
2. YAML config file (``config/config.yaml`` or ``--config``)
3. environment variables (``.env`` loaded through python-dotenv)
4. command line flags
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from krb5perf.core.exceptions import ConfigurationError


DEFAULT_CONFIG_PATH = "config/config.yaml"

BACKENDS = ("kerberos", "http")


@dataclass(frozen=True)
class RunConfig:
    """Everything a benchmark run needs, validated by ``validate()``."""
    backend: str = "kerberos"
    service: str = ""
    iterations: int = 0
    parallelism: int = 0
    queue_size: int = 0

    client: Optional[str] = None
    password: Optional[str] = None
    keytab: Optional[str] = None
    csv: Optional[str] = None

    base_url: Optional[str] = None
    timeout: float = 10.0

    quiet: bool = False
    verbose: bool = False
    detail: bool = False

    cpuprofile: Optional[str] = None
    memprofile: Optional[str] = None

    log_level: str = "WARNING"
    log_file: Optional[str] = None

    @property
    def effective_queue_size(self) -> int:
        """Queue capacity; 0 means one slot per iteration."""
        return self.queue_size if self.queue_size > 0 else self.iterations

    @property
    def show_progress(self) -> bool:
        return not self.quiet and not self.verbose

    def validate(self) -> "RunConfig":
        """
        Check the configuration is runnable.

        Raises:
            ConfigurationError: On the first invalid or missing value
        """
        if self.backend not in BACKENDS:
            raise ConfigurationError(
                f"Unknown backend '{self.backend}' (expected one of {', '.join(BACKENDS)})"
            )
        if not self.service:
            raise ConfigurationError("--service is required")
        if self.iterations < 1:
            raise ConfigurationError("--iterations must be a positive integer")
        if self.parallelism < 1:
            raise ConfigurationError("--parallelism must be a positive integer")
        if self.queue_size < 0:
            raise ConfigurationError("--queue-size must not be negative")
        if self.timeout <= 0:
            raise ConfigurationError("--timeout must be positive")
        if not (self.keytab or self.password or self.csv):
            raise ConfigurationError(
                "One of either --password, --keytab or --csv must be specified"
            )
        if self.keytab:
            if self.backend != "kerberos":
                raise ConfigurationError("--keytab is only supported by the kerberos backend")
            _check_keytab(self.keytab)
        if self.backend == "http" and not self.base_url:
            raise ConfigurationError("--url is required with the http backend")
        return self


def _check_keytab(keytab: str) -> None:
    """File keytabs must exist before the run; other keytab types are left to the library."""
    if keytab.startswith("FILE:"):
        path = keytab[len("FILE:"):]
    elif ":" in keytab.split("/")[0]:
        return
    else:
        path = keytab

    if not Path(path).is_file():
        raise ConfigurationError(f"Keytab not found: {path}")


# (section, key) in the YAML file for each RunConfig field
_YAML_LAYOUT = {
    "backend": ("run", "backend"),
    "service": ("run", "service"),
    "iterations": ("run", "iterations"),
    "parallelism": ("run", "parallelism"),
    "queue_size": ("run", "queue_size"),
    "client": ("credentials", "client"),
    "password": ("credentials", "password"),
    "keytab": ("credentials", "keytab"),
    "csv": ("credentials", "csv"),
    "base_url": ("http", "base_url"),
    "timeout": ("http", "timeout"),
    "quiet": ("output", "quiet"),
    "verbose": ("output", "verbose"),
    "detail": ("output", "detail"),
    "cpuprofile": ("profiling", "cpuprofile"),
    "memprofile": ("profiling", "memprofile"),
    "log_level": ("logging", "level"),
    "log_file": ("logging", "file"),
}

_ENV_LAYOUT = {
    "backend": "KRB5PERF_BACKEND",
    "service": "KRB5PERF_SERVICE",
    "iterations": "KRB5PERF_ITERATIONS",
    "parallelism": "KRB5PERF_PARALLELISM",
    "queue_size": "KRB5PERF_QUEUE_SIZE",
    "client": "KRB5PERF_CLIENT",
    "password": "KRB5PERF_PASSWORD",
    "keytab": "KTNAME",
    "csv": "KRB5PERF_CSV",
    "base_url": "KRB5PERF_URL",
    "timeout": "KRB5PERF_TIMEOUT",
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
}

_FIELD_TYPES = {f.name: f.type for f in fields(RunConfig)}


def _coerce(name: str, value: Any) -> Any:
    """Convert a raw YAML or env value to the type of the RunConfig field."""
    if value is None:
        return None

    kind = _FIELD_TYPES[name]
    try:
        if kind in (int, "int"):
            if isinstance(value, bool):
                raise ValueError(value)
            return int(value)
        if kind in (float, "float"):
            return float(value)
        if kind in (bool, "bool"):
            if isinstance(value, bool):
                return value
            return str(value).strip().lower() in ('true', '1', 'yes')
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid value for {name}: {value!r}")

    return str(value)


def load_yaml(config_path: Optional[str]) -> Dict[str, Any]:
    """
    Read a YAML config file into RunConfig field values.

    A missing default file is not an error; a missing explicit file is.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    try:
        with open(path, 'r') as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError:
        if config_path:
            raise ConfigurationError(f"Config file not found: {config_path}")
        return {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML config: {str(e)}")

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Invalid YAML config: expected a mapping in {path}")

    values: Dict[str, Any] = {}
    for name, (section, key) in _YAML_LAYOUT.items():
        block = raw.get(section) or {}
        if key in block and block[key] is not None:
            values[name] = _coerce(name, block[key])
    return values


def load_env() -> Dict[str, Any]:
    """Read RunConfig field values from the environment (and ``.env``)."""
    load_dotenv()

    values: Dict[str, Any] = {}
    for name, variable in _ENV_LAYOUT.items():
        raw = os.environ.get(variable)
        if raw:
            values[name] = _coerce(name, raw)
    return values


def load_config(
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None
) -> RunConfig:
    """
    Build and validate the run configuration.

    Args:
        config_path: Explicit YAML file, or None for the default location
        overrides: Values from the command line; None entries are ignored

    Returns:
        Validated RunConfig

    Raises:
        ConfigurationError: If any layer is unreadable or the result is invalid
    """
    config = RunConfig()
    config = replace(config, **load_yaml(config_path))
    config = replace(config, **load_env())

    if overrides:
        cli = {k: v for k, v in overrides.items() if v is not None}
        unknown = set(cli) - set(_FIELD_TYPES)
        if unknown:
            raise ConfigurationError(f"Unknown options: {', '.join(sorted(unknown))}")
        config = replace(config, **cli)

    return config.validate()
