"""Configuration management for TruncSeeker."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional, Dict, Any
import yaml
from truncseeker.constants import (
    ANALYSIS_DIR_NAME,
    DEFAULT_FORWARD_PATTERN,
    DEFAULT_QUALITY_THRESHOLD,
    DEFAULT_REVERSE_PATTERN,
    DEFAULT_SKEW_THRESHOLD,
    HISTOGRAM_FILE_NAME,
    PARAMS_FILE_NAME,
    RECORDS_TABLE_NAME,
    REPORTS_DIR_NAME,
    SUMMARY_TABLE_NAME,
    TRIMMED_DIR_NAME,
)
from truncseeker.exceptions import ConfigurationError

CUTOFF_POLICIES = ("before_drop", "at_drop")
FINGERPRINT_METHODS = ("stat", "sha256")


@dataclass
class RuntimeConfig:
    """Runtime configuration."""

    log_level: str = "WARNING"
    log_file: Optional[Path] = None
    # Verify artifact fingerprints in addition to existence
    strict_checkpoints: bool = False
    # 'stat' (size + mtime) or 'sha256'
    fingerprint: str = "stat"
    # Enable tqdm progress where available
    enable_progress: bool = True


@dataclass
class PerformanceConfig:
    """Performance-related configuration."""

    threads: int = 4


@dataclass
class ToolConfig:
    """External tool configuration."""

    cutadapt: Dict[str, Any] = field(
        default_factory=lambda: {
            # 16S V4 primers (515F/806R)
            "forward_primer": "GTGCCAGCMGCCGCGGTAA",
            "reverse_primer": "GGACTACHVGGGTWTCTAAT",
            "minimum_length": 1,
            "additional_args": "",
        }
    )
    fastqc: Dict[str, Any] = field(default_factory=lambda: {"additional_args": ""})
    qiime: Dict[str, Any] = field(
        default_factory=lambda: {
            # e.g. ["conda", "run", "-n", "qiime2-2025.10", "qiime"]
            "command": ["qiime"],
            "trim_left_f": 0,
            "trim_left_r": 0,
        }
    )


@dataclass
class Config:
    """Main configuration class."""

    # Raw (demultiplexed) reads; trimmed reads land under output_root
    input_root: Optional[Path] = None
    output_root: Path = Path("truncseeker_output")

    # Truncation estimation
    threshold: float = DEFAULT_QUALITY_THRESHOLD
    skew_threshold: int = DEFAULT_SKEW_THRESHOLD
    cutoff_policy: str = "before_drop"
    forward_pattern: str = DEFAULT_FORWARD_PATTERN
    reverse_pattern: str = DEFAULT_REVERSE_PATTERN

    # Analysis inputs
    manifest: Optional[Path] = None
    metadata: Optional[Path] = None
    classifier: Optional[Path] = None
    sampling_depth: int = 0

    # Sub-configurations
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)
    tools: ToolConfig = field(default_factory=ToolConfig)

    # Convenience properties
    @property
    def threads(self) -> int:
        return self.performance.threads

    @threads.setter
    def threads(self, value: int):
        self.performance.threads = value

    @property
    def trimmed_dir(self) -> Path:
        return Path(self.output_root) / TRIMMED_DIR_NAME

    @property
    def reports_dir(self) -> Path:
        return Path(self.output_root) / REPORTS_DIR_NAME

    @property
    def analysis_dir(self) -> Path:
        return Path(self.output_root) / ANALYSIS_DIR_NAME

    @property
    def params_file(self) -> Path:
        return self.reports_dir / PARAMS_FILE_NAME

    @property
    def histogram_file(self) -> Path:
        return self.reports_dir / HISTOGRAM_FILE_NAME

    @property
    def records_table(self) -> Path:
        return self.reports_dir / RECORDS_TABLE_NAME

    @property
    def summary_table(self) -> Path:
        return self.reports_dir / SUMMARY_TABLE_NAME

    def validate(self) -> None:
        """Validate configuration."""
        if self.threshold < 0:
            raise ConfigurationError("Quality threshold must be >= 0")
        if self.skew_threshold < 0:
            raise ConfigurationError("Skew threshold must be >= 0")
        if self.cutoff_policy not in CUTOFF_POLICIES:
            raise ConfigurationError(
                f"Invalid cutoff_policy '{self.cutoff_policy}'; "
                f"expected one of {', '.join(CUTOFF_POLICIES)}"
            )
        if self.runtime.fingerprint not in FINGERPRINT_METHODS:
            raise ConfigurationError(
                f"Invalid runtime.fingerprint '{self.runtime.fingerprint}'; "
                f"expected one of {', '.join(FINGERPRINT_METHODS)}"
            )
        if self.performance.threads < 1:
            raise ConfigurationError("Threads must be >= 1")
        if self.sampling_depth < 0:
            raise ConfigurationError("sampling_depth must be >= 0")
        for key in ("forward_pattern", "reverse_pattern"):
            try:
                re.compile(getattr(self, key))
            except re.error as e:
                raise ConfigurationError(f"Invalid {key} '{getattr(self, key)}': {e}") from e
        if self.forward_pattern == self.reverse_pattern:
            raise ConfigurationError("forward_pattern and reverse_pattern must differ")
        if self.input_root is not None and not Path(self.input_root).is_dir():
            raise ConfigurationError(f"Input directory not found: {self.input_root}")

        command = self.tools.qiime.get("command")
        if isinstance(command, str):
            self.tools.qiime["command"] = command.split()
        elif not command:
            raise ConfigurationError("tools.qiime.command must not be empty")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""

        def path_to_str(obj):
            if isinstance(obj, Path):
                return str(obj)
            elif isinstance(obj, dict):
                return {k: path_to_str(v) for k, v in obj.items()}
            elif isinstance(obj, (list, tuple)):
                return [path_to_str(item) for item in obj]
            return obj

        return path_to_str(asdict(self))


_PATH_FIELDS = ("input_root", "output_root", "manifest", "metadata", "classifier")
_SCALAR_FIELDS = (
    "threshold",
    "skew_threshold",
    "cutoff_policy",
    "forward_pattern",
    "reverse_pattern",
    "sampling_depth",
)


def load_config(path: Path) -> Config:
    """Load configuration from YAML file."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file must contain a mapping: {path}")

    cfg = Config()

    for key in _PATH_FIELDS:
        if data.get(key) is not None:
            setattr(cfg, key, Path(data[key]))
    for key in _SCALAR_FIELDS:
        if data.get(key) is not None:
            setattr(cfg, key, data[key])
    if data.get("threads") is not None:
        cfg.performance.threads = data["threads"]

    # Runtime config
    for key, value in (data.get("runtime") or {}).items():
        if hasattr(cfg.runtime, key):
            if key == "log_file" and value:
                value = Path(value)
            setattr(cfg.runtime, key, value)

    # Performance config
    for key, value in (data.get("performance") or {}).items():
        if hasattr(cfg.performance, key):
            setattr(cfg.performance, key, value)

    # Tool config: merged over defaults so partial sections keep the other keys
    for tool, params in (data.get("tools") or {}).items():
        if not hasattr(cfg.tools, tool) or params is None:
            continue
        if not isinstance(params, dict):
            raise ConfigurationError(
                f"Invalid tools.{tool} config; expected mapping, got {type(params).__name__}"
            )
        getattr(cfg.tools, tool).update(params)

    return cfg


def save_config(cfg: Config, path: Path) -> None:
    """Save configuration to YAML file."""
    data = cfg.to_dict()
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
