"""Runtime configuration for the pipeline and the CLI.

Precedence: CLI overrides > environment (PROOFGUARD_*) > TOML file > defaults.

Example proofguard.toml:

    [store]
    root = ".proofguard"

    [compare]
    threshold_percent = 1.0
    fail_on_regression = false

    [engine]
    prover = "proofguard.engines.reference:ReferenceEngine"
    oracle = "proofguard.engines.reference:ReferenceOracle"

    [input]
    length = 2
    block_commitment = [1, 1, 1, 1, 1]
    nonce = [1, 1, 1, 1, 1]
    test_name = "baseline_small"

    [logging]
    level = "WARNING"
"""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from proofguard.engines import REFERENCE_ENGINE, REFERENCE_ORACLE
from proofguard.errors import ConfigError
from proofguard.kernel.compare import DEFAULT_THRESHOLD_PERCENT
from proofguard.kernel.record import ProveInput

DEFAULT_CONFIG_FILE = "proofguard.toml"
ENV_PREFIX = "PROOFGUARD_"

_BOOLEAN_TRUE = frozenset({"1", "true", "t", "yes", "y", "on"})
_BOOLEAN_FALSE = frozenset({"0", "false", "f", "no", "n", "off"})

# (toml section, toml key) -> flat config field
_FILE_FIELDS: Dict[Tuple[str, str], str] = {
    ("store", "root"): "store_root",
    ("compare", "threshold_percent"): "threshold_percent",
    ("compare", "fail_on_regression"): "fail_on_regression",
    ("engine", "prover"): "engine",
    ("engine", "oracle"): "oracle",
    ("input", "length"): "length",
    ("input", "block_commitment"): "block_commitment",
    ("input", "nonce"): "nonce",
    ("input", "test_name"): "test_name",
    ("logging", "level"): "log_level",
}


class PipelineConfig(BaseModel):
    """Effective configuration."""
    store_root: Path = Path(".proofguard")
    threshold_percent: float = Field(DEFAULT_THRESHOLD_PERCENT, gt=0)
    fail_on_regression: bool = False
    engine: str = REFERENCE_ENGINE
    oracle: str = REFERENCE_ORACLE
    length: int = Field(2, ge=0)
    block_commitment: Tuple[int, ...] = (1, 1, 1, 1, 1)
    nonce: Tuple[int, ...] = (1, 1, 1, 1, 1)
    test_name: str = "baseline_small"
    log_level: str = "WARNING"

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level '{v}'")
        return level

    def prove_input(self) -> ProveInput:
        return ProveInput(
            length=self.length,
            block_commitment=self.block_commitment,
            nonce=self.nonce,
        )


def _load_toml_file(path: Path, required: bool) -> Dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigError(f"Config file not found: {path}")
        return {}
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Unable to read config file {path}: {e}") from e


def _flatten_file_payload(payload: Mapping[str, Any], base_dir: Path) -> Dict[str, Any]:
    flat: Dict[str, Any] = {}
    for section, table in payload.items():
        if not isinstance(table, Mapping):
            raise ConfigError(f"Config section [{section}] must be a table")
        for key, value in table.items():
            field = _FILE_FIELDS.get((section, key))
            if field is None:
                raise ConfigError(f"Unknown config key '{section}.{key}'")
            flat[field] = value
    if "store_root" in flat:
        root = Path(flat["store_root"]).expanduser()
        flat["store_root"] = root if root.is_absolute() else base_dir / root
    return flat


def _coerce_env(field: str, raw: str) -> Any:
    if field in ("block_commitment", "nonce"):
        try:
            return tuple(int(part) for part in raw.split(",") if part.strip())
        except ValueError:
            raise ConfigError(f"{ENV_PREFIX}{field.upper()} must be comma-separated integers") from None
    if field == "fail_on_regression":
        lowered = raw.strip().lower()
        if lowered in _BOOLEAN_TRUE:
            return True
        if lowered in _BOOLEAN_FALSE:
            return False
        raise ConfigError(f"{ENV_PREFIX}FAIL_ON_REGRESSION must be a boolean, got {raw!r}")
    return raw


def _collect_env_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for field in PipelineConfig.model_fields:
        raw = environ.get(f"{ENV_PREFIX}{field.upper()}")
        if raw is not None:
            overrides[field] = _coerce_env(field, raw)
    return overrides


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    cli_overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> PipelineConfig:
    """Load the effective config.

    Args:
        config_path: explicit TOML path (must exist); defaults to
            ./proofguard.toml when present
        cli_overrides: flat field -> value; None values are ignored
        environ: environment mapping (defaults to os.environ)

    Raises:
        ConfigError: unreadable file, unknown keys, or invalid values
    """
    explicit = config_path is not None
    path = Path(config_path).expanduser().resolve() if explicit else Path.cwd() / DEFAULT_CONFIG_FILE
    merged = _flatten_file_payload(_load_toml_file(path, required=explicit), path.parent)
    merged.update(_collect_env_overrides(os.environ if environ is None else environ))
    merged.update({k: v for k, v in (cli_overrides or {}).items() if v is not None})

    try:
        config = PipelineConfig(**merged)
        config.prove_input()
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
    return config
