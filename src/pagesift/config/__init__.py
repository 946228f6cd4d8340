from .config import (
    PRUNE_SCORE_THRESHOLD,
    CacheConfig,
    Config,
    FilterConfig,
    GateConfig,
    GateThresholds,
    LimitsConfig,
    MonitoringConfig,
    PostProcessingConfig,
    RecoveryConfig,
    ScoringConfig,
    StageConfig,
    find_config_file,
    load_config,
)

__all__ = [
    "PRUNE_SCORE_THRESHOLD",
    "CacheConfig",
    "Config",
    "FilterConfig",
    "GateConfig",
    "GateThresholds",
    "LimitsConfig",
    "MonitoringConfig",
    "PostProcessingConfig",
    "RecoveryConfig",
    "ScoringConfig",
    "StageConfig",
    "find_config_file",
    "load_config",
]
