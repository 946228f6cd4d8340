"""
Configuration management for PageSift using Pydantic.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pagesift.exceptions import ConfigurationError

# --- Setup Logging ---
log = logging.getLogger(__name__)

# Children scoring at or below this value are pruned from a winning candidate.
PRUNE_SCORE_THRESHOLD = 0

KNOWN_RULE_SETS = ("safe", "aggressive")

# --- Nested Configuration Models ---


class LimitsConfig(BaseModel):
    """Input size limits."""

    max_content_length: int = Field(
        default=1_000_000, gt=0, description="Captured markup longer than this is truncated before Stage 0."
    )
    max_filter_passes: int = Field(
        default=8, ge=1, description="Upper bound on rule passes while a rule set runs to a fixed point."
    )


class RecoveryConfig(BaseModel):
    """Transient retry and recovery strategy settings."""

    strategy_timeout_seconds: float = Field(default=30.0, gt=0, description="Hard wait bound per strategy.")
    retry_attempts: int = Field(default=3, ge=1, description="Attempts for transient faults before recovery.")
    retry_delay_seconds: float = Field(default=1.0, ge=0, description="Fixed delay between transient retries.")


class FilterConfig(BaseModel):
    """Boilerplate filter settings."""

    enabled_rule_sets: List[str] = Field(default_factory=lambda: list(KNOWN_RULE_SETS))
    bypass_code_block_threshold: int = Field(default=3, ge=1)
    heading_proximity_depth: int = Field(default=3, ge=0, description="Ancestor distance searched for headings.")
    link_dense_list_threshold: float = Field(default=0.5, ge=0.0, le=1.0)

    @field_validator("enabled_rule_sets")
    @classmethod
    def validate_rule_sets(cls, v: List[str]) -> List[str]:
        unknown = [name for name in v if name not in KNOWN_RULE_SETS]
        if unknown:
            raise ValueError(f"unknown rule sets: {', '.join(unknown)}")
        return v


class ScoringConfig(BaseModel):
    """Heuristic scoring engine settings."""

    prune_threshold: int = Field(default=PRUNE_SCORE_THRESHOLD)
    min_text_length: int = Field(default=50, ge=0, description="Nodes with less trimmed text score 0.")
    link_density_limit: float = Field(default=0.3, ge=0.0)


class GateThresholds(BaseModel):
    min_score: int = Field(ge=0, le=100)
    min_characters: int = 0
    min_paragraphs: int = 0
    max_link_density: float = 1.0
    min_structure_score: int = 0


class GateConfig(BaseModel):
    """Quality gate thresholds between stages."""

    semantic: GateThresholds = Field(
        default_factory=lambda: GateThresholds(
            min_score=60, min_characters=500, min_paragraphs=2, max_link_density=0.4, min_structure_score=30
        )
    )
    readability: GateThresholds = Field(
        default_factory=lambda: GateThresholds(min_score=40, min_characters=300, max_link_density=0.5)
    )
    strict_criteria: bool = Field(
        default=False, description="Require every criterion, not just the score, for a gate to pass."
    )


class StageConfig(BaseModel):
    """Optional pipeline stages."""

    enable_stage0: bool = True
    enable_readability: bool = True
    stage0_min_score: int = 60
    stage0_min_length: int = 100


class PostProcessingConfig(BaseModel):
    """Markdown post-processing."""

    generate_toc: bool = False
    toc_min_headings: int = 3
    include_citation: bool = False
    max_consecutive_newlines: int = Field(default=2, ge=1)


class CacheConfig(BaseModel):
    """Result cache settings."""

    enabled: bool = False
    backend: Literal["memory", "file"] = "memory"
    ttl_seconds: int = Field(default=24 * 60 * 60, gt=0)
    max_entries: int = Field(default=256, gt=0)
    directory: Path = Field(default_factory=lambda: Path.home() / ".pagesift" / "cache")


class MonitoringConfig(BaseModel):
    """Configuration for logging."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(default=None, description="Path to log file. If None, logs to console.")

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


# --- Main Configuration Class ---


class Config(BaseSettings):
    project_name: str = "PageSift"
    version: str = "0.1.0"
    limits: LimitsConfig = Field(default_factory=LimitsConfig)
    recovery: RecoveryConfig = Field(default_factory=RecoveryConfig)
    filters: FilterConfig = Field(default_factory=FilterConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    gates: GateConfig = Field(default_factory=GateConfig)
    stages: StageConfig = Field(default_factory=StageConfig)
    post_processing: PostProcessingConfig = Field(default_factory=PostProcessingConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="PAGESIFT_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls.model_validate({})
        try:
            return cls.model_validate(yaml_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e

    def extraction_fingerprint(self) -> str:
        """Canonical JSON of the settings that influence extraction output."""
        relevant: Dict[str, Any] = self.model_dump(
            mode="json", include={"limits", "filters", "scoring", "gates", "stages", "post_processing"}
        )
        return json.dumps(relevant, sort_keys=True, separators=(",", ":"))


def find_config_file() -> Optional[Path]:
    current_dir = Path.cwd()
    paths_to_check = [
        current_dir / "pagesift.yaml",
        current_dir / "pagesift.yml",
        current_dir / "config.yaml",
    ]
    for path in paths_to_check:
        if path.exists():
            return path
    return None


def load_config(path: Optional[Path] = None) -> Config:
    """Load configuration from ``path``, a discovered file, or defaults."""
    config_path = path or find_config_file()
    if config_path is None:
        log.info("No config file found. Using default settings.")
        return Config()
    log.info("Loading configuration from: %s", config_path)
    return Config.from_yaml(config_path)
