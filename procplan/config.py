"""
ProcPlan - Configuration
========================

Named, enumerated configuration for the procurement core.

Every threshold the calculators, the alert rules and the optimizer use lives
here with its documented default; nothing is embedded as a literal in the
algorithms.

Uso:
    from procplan.config import Settings

    config = Settings.get_config()
    tolerance = config.coherence.tolerance_percent

Configuração via variáveis de ambiente:
    PROCPLAN_COHERENCE_TOLERANCE=1.0
    PROCPLAN_ALERT_LEAD_WINDOWS=1,3,7,15
    PROCPLAN_BUDGET_THRESHOLDS=75,85,95
    PROCPLAN_COHERENCE_ALERT_THRESHOLD=5
    PROCPLAN_OPTIMIZER_ALGORITHM=greedy
    PROCPLAN_OPTIMIZER_ITERATIONS=100
    PROCPLAN_OPTIMIZER_TIME_LIMIT=30
    PROCPLAN_ENABLE_BUDGET_ALERTS=false
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from .errors import ConfigurationError, InvalidConfiguration

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════════

class OptimizationAlgorithm(str, Enum):
    """
    Schedule optimisation strategies.

    GREEDY: priority-ordered earliest-slot placement (deterministic)
    GENETIC: population search over date shifts (seeded)
    SIMULATED_ANNEALING: slot-swap local search (seeded)
    CRITICAL_PATH: slack-based advancement of non-critical items (deterministic)
    """
    GREEDY = "greedy"
    GENETIC = "genetic"
    SIMULATED_ANNEALING = "simulated_annealing"
    CRITICAL_PATH = "critical_path"

    @classmethod
    def parse(cls, value: Union[str, "OptimizationAlgorithm"]) -> "OptimizationAlgorithm":
        """
        Resolve an algorithm name.

        Accepts enum members and the spellings used by callers
        (``simulated_annealing``, ``simulatedAnnealing``, ``critical-path``).

        Raises:
            InvalidConfiguration: the name matches no algorithm.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise InvalidConfiguration(value, [a.value for a in cls])
        normalized = re.sub(r"(?<=[a-z])(?=[A-Z])", "_", value.strip())
        normalized = normalized.replace("-", "_").replace(" ", "_").lower()
        try:
            return cls(normalized)
        except ValueError:
            raise InvalidConfiguration(value, [a.value for a in cls]) from None


# ═══════════════════════════════════════════════════════════════════════════════
# SCHEDULE / COHERENCE SETTINGS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class ScheduleSettings:
    """
    Criticality thresholds and lead-time defaults.

    A line whose lead time is missing uses ``missing_lead_time_days``;
    a negative lead time always counts as 0.
    """
    high_days: int = 3
    medium_days: int = 7
    terminal_states: Tuple[str, ...] = ("rejected", "cancelled")
    missing_lead_time_days: int = 0


@dataclass
class CoherenceSettings:
    """Tolerance (percent of the list amount) under which orders are coherent."""
    tolerance_percent: float = 1.0


# ═══════════════════════════════════════════════════════════════════════════════
# ALERT SETTINGS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class CriticalDateRuleConfig:
    enabled: bool = True
    lead_windows: Tuple[int, ...] = (1, 3, 7, 15)
    window_tolerance_days: int = 1
    recipients: Tuple[str, ...] = ("commercial", "manager")


@dataclass
class CoherenceRuleConfig:
    enabled: bool = True
    deviation_threshold_percent: float = 5.0
    error_percent: float = 20.0
    recipients: Tuple[str, ...] = ("finance",)


@dataclass
class BudgetRuleConfig:
    enabled: bool = True
    thresholds: Tuple[float, ...] = (75.0, 85.0, 95.0)
    action_percent: float = 90.0
    error_percent: float = 85.0
    critical_percent: float = 95.0
    recipients: Tuple[str, ...] = ("management", "finance")


@dataclass
class ResourceRuleConfig:
    enabled: bool = True
    overload_percent: float = 100.0
    critical_percent: float = 150.0
    default_capacity: int = 5
    recipients: Tuple[str, ...] = ("hr", "management")


@dataclass
class SystemRuleConfig:
    enabled: bool = True
    volume_threshold: int = 1000
    volume_recipients: Tuple[str, ...] = ("admin",)
    trend_recipients: Tuple[str, ...] = ("management",)
    terminal_project_states: Tuple[str, ...] = ("completed", "closed", "cancelled")


@dataclass(frozen=True)
class EscalationTier:
    """One escalation step: after ``wait_hours`` unacknowledged, add ``recipients``."""
    level: int
    wait_hours: float
    recipients: Tuple[str, ...]


def _default_tiers() -> Tuple[EscalationTier, ...]:
    return (
        EscalationTier(level=1, wait_hours=2.0, recipients=("supervisor",)),
        EscalationTier(level=2, wait_hours=6.0, recipients=("management",)),
        EscalationTier(level=3, wait_hours=24.0, recipients=("direction",)),
    )


@dataclass
class EscalationConfig:
    enabled: bool = True
    tiers: Tuple[EscalationTier, ...] = field(default_factory=_default_tiers)


@dataclass
class AlertSettings:
    """Rule toggles, thresholds and recipient lists for the alert engine."""
    critical_dates: CriticalDateRuleConfig = field(default_factory=CriticalDateRuleConfig)
    coherence: CoherenceRuleConfig = field(default_factory=CoherenceRuleConfig)
    budget: BudgetRuleConfig = field(default_factory=BudgetRuleConfig)
    resources: ResourceRuleConfig = field(default_factory=ResourceRuleConfig)
    system: SystemRuleConfig = field(default_factory=SystemRuleConfig)
    escalation: EscalationConfig = field(default_factory=EscalationConfig)

    # Notifications generated inside the same bucket share their identity
    dedup_bucket_hours: int = 24


# ═══════════════════════════════════════════════════════════════════════════════
# OPTIMIZER SETTINGS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class OptimizerSettings:
    """Defaults used when building an OptimizationConfig without explicit values."""
    algorithm: OptimizationAlgorithm = OptimizationAlgorithm.GREEDY
    iterations: int = 100
    population_size: int = 50
    time_limit_sec: Optional[float] = None
    seed: Optional[int] = None
    max_workers: int = 2


# ═══════════════════════════════════════════════════════════════════════════════
# AGGREGATE CONFIG
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class ProcPlanSettings:
    schedule: ScheduleSettings = field(default_factory=ScheduleSettings)
    coherence: CoherenceSettings = field(default_factory=CoherenceSettings)
    alerts: AlertSettings = field(default_factory=AlertSettings)
    optimizer: OptimizerSettings = field(default_factory=OptimizerSettings)

    def validate(self) -> "ProcPlanSettings":
        """
        Check value ranges and consistency.

        Raises:
            ConfigurationError: first invalid value found.
        """
        errors: List[str] = []

        if self.schedule.high_days < 0 or self.schedule.medium_days < self.schedule.high_days:
            errors.append("schedule: require 0 <= high_days <= medium_days")
        if self.schedule.missing_lead_time_days < 0:
            errors.append("schedule: missing_lead_time_days must be >= 0")

        if self.coherence.tolerance_percent < 0:
            errors.append("coherence: tolerance_percent must be >= 0")

        alerts = self.alerts
        if not alerts.critical_dates.lead_windows or any(w < 0 for w in alerts.critical_dates.lead_windows):
            errors.append("alerts.critical_dates: lead_windows must be non-empty and >= 0")
        if alerts.critical_dates.window_tolerance_days < 0:
            errors.append("alerts.critical_dates: window_tolerance_days must be >= 0")
        if alerts.coherence.deviation_threshold_percent < 0:
            errors.append("alerts.coherence: deviation_threshold_percent must be >= 0")
        if not alerts.budget.thresholds or any(t <= 0 or t > 1000 for t in alerts.budget.thresholds):
            errors.append("alerts.budget: thresholds must lie in (0, 1000]")
        if alerts.resources.overload_percent <= 0 or alerts.resources.critical_percent < alerts.resources.overload_percent:
            errors.append("alerts.resources: require 0 < overload_percent <= critical_percent")
        if alerts.resources.default_capacity <= 0:
            errors.append("alerts.resources: default_capacity must be > 0")
        if alerts.system.volume_threshold < 0:
            errors.append("alerts.system: volume_threshold must be >= 0")
        if alerts.dedup_bucket_hours <= 0:
            errors.append("alerts: dedup_bucket_hours must be > 0")

        tiers = alerts.escalation.tiers
        for previous, current in zip(tiers, tiers[1:]):
            if current.level <= previous.level or current.wait_hours <= previous.wait_hours:
                errors.append("alerts.escalation: tiers must increase in level and wait_hours")
                break

        if self.optimizer.iterations <= 0:
            errors.append("optimizer: iterations must be > 0")
        if self.optimizer.population_size < 2:
            errors.append("optimizer: population_size must be >= 2")
        if self.optimizer.time_limit_sec is not None and self.optimizer.time_limit_sec <= 0:
            errors.append("optimizer: time_limit_sec must be > 0")
        if self.optimizer.max_workers <= 0:
            errors.append("optimizer: max_workers must be > 0")

        if errors:
            raise ConfigurationError("; ".join(errors))
        return self


# ═══════════════════════════════════════════════════════════════════════════════
# ENVIRONMENT LOADER
# ═══════════════════════════════════════════════════════════════════════════════

def _parse_float(env_var: str, value: str) -> float:
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"Invalid number for {env_var}: {value!r}") from None


def _parse_int(env_var: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Invalid integer for {env_var}: {value!r}") from None


def _parse_number_list(env_var: str, value: str, cast=float) -> Tuple:
    parts = [p.strip() for p in value.split(",") if p.strip()]
    try:
        return tuple(cast(p) for p in parts)
    except ValueError:
        raise ConfigurationError(f"Invalid list for {env_var}: {value!r}") from None


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


class Settings:
    """
    Cached access to the active configuration.

    Uso:
        config = Settings.get_config()
        Settings.reset()  # force re-reading the environment
    """

    _instance: Optional[ProcPlanSettings] = None

    @classmethod
    def _load_from_env(cls, environ: Optional[Dict[str, str]] = None) -> ProcPlanSettings:
        env = os.environ if environ is None else environ
        config = ProcPlanSettings()

        value = env.get("PROCPLAN_COHERENCE_TOLERANCE")
        if value:
            config.coherence.tolerance_percent = _parse_float("PROCPLAN_COHERENCE_TOLERANCE", value)

        value = env.get("PROCPLAN_ALERT_LEAD_WINDOWS")
        if value:
            config.alerts.critical_dates.lead_windows = _parse_number_list(
                "PROCPLAN_ALERT_LEAD_WINDOWS", value, int
            )

        value = env.get("PROCPLAN_BUDGET_THRESHOLDS")
        if value:
            config.alerts.budget.thresholds = _parse_number_list("PROCPLAN_BUDGET_THRESHOLDS", value)

        value = env.get("PROCPLAN_COHERENCE_ALERT_THRESHOLD")
        if value:
            config.alerts.coherence.deviation_threshold_percent = _parse_float(
                "PROCPLAN_COHERENCE_ALERT_THRESHOLD", value
            )

        value = env.get("PROCPLAN_OPTIMIZER_ALGORITHM")
        if value:
            config.optimizer.algorithm = OptimizationAlgorithm.parse(value)
            logger.info(f"Optimizer algorithm = {config.optimizer.algorithm.value}")

        value = env.get("PROCPLAN_OPTIMIZER_ITERATIONS")
        if value:
            config.optimizer.iterations = _parse_int("PROCPLAN_OPTIMIZER_ITERATIONS", value)

        value = env.get("PROCPLAN_OPTIMIZER_TIME_LIMIT")
        if value:
            config.optimizer.time_limit_sec = _parse_float("PROCPLAN_OPTIMIZER_TIME_LIMIT", value)

        bool_mapping = {
            "PROCPLAN_ENABLE_CRITICAL_DATE_ALERTS": config.alerts.critical_dates,
            "PROCPLAN_ENABLE_COHERENCE_ALERTS": config.alerts.coherence,
            "PROCPLAN_ENABLE_BUDGET_ALERTS": config.alerts.budget,
            "PROCPLAN_ENABLE_RESOURCE_ALERTS": config.alerts.resources,
            "PROCPLAN_ENABLE_SYSTEM_ALERTS": config.alerts.system,
        }
        for env_var, rule_config in bool_mapping.items():
            value = env.get(env_var)
            if value:
                rule_config.enabled = _parse_bool(value)

        return config.validate()

    @classmethod
    def get_config(cls) -> ProcPlanSettings:
        """Return the active configuration, loading it on first use."""
        if cls._instance is None:
            cls._instance = cls._load_from_env()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the cached configuration."""
        cls._instance = None

    @classmethod
    def to_dict(cls) -> Dict[str, Any]:
        config = cls.get_config()
        return {
            "coherence_tolerance_percent": config.coherence.tolerance_percent,
            "lead_windows": list(config.alerts.critical_dates.lead_windows),
            "budget_thresholds": list(config.alerts.budget.thresholds),
            "optimizer_algorithm": config.optimizer.algorithm.value,
            "optimizer_iterations": config.optimizer.iterations,
            "rules_enabled": {
                "critical_dates": config.alerts.critical_dates.enabled,
                "coherence": config.alerts.coherence.enabled,
                "budget": config.alerts.budget.enabled,
                "resources": config.alerts.resources.enabled,
                "system": config.alerts.system.enabled,
            },
        }
