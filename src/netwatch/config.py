"""
Sampling configuration.

SamplingConfig is immutable. The scheduler holds one instance for the
duration of a tick; a reload swaps the whole object between ticks.
"""
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Tuple

from .errors import ConfigError, InvalidName
from .validation import (
    validate_average_window,
    validate_interface_name,
    validate_refresh_interval,
    validate_target,
)

DEFAULT_DIAGNOSTIC_TARGETS = ("1.1.1.1", "8.8.8.8")
DEFAULT_DNS_DOMAINS = ("cloudflare.com", "google.com")

# Keys understood by from_mapping(), in the nload/netwatch config style
_MAPPING_KEYS = {
    'RefreshInterval': 'refresh_interval_ms',
    'AverageWindow': 'average_window_s',
    'HighPerformance': 'high_performance',
    'Devices': 'interfaces',
    'DiagnosticTargets': 'diagnostic_targets',
    'DNSDomains': 'dns_domains',
}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def _as_tuple(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        return tuple(value.split())
    return tuple(value)


@dataclass(frozen=True)
class SamplingConfig:
    """Everything the sampling core needs to run. Validated on construction."""

    refresh_interval_ms: int = 1000
    average_window_s: float = 300
    high_performance: bool = False
    interfaces: Tuple[str, ...] = ()
    """Explicit interface names; empty means all interfaces."""
    include_virtual: bool = False

    diagnostic_targets: Tuple[str, ...] = DEFAULT_DIAGNOSTIC_TARGETS
    dns_domains: Tuple[str, ...] = DEFAULT_DNS_DOMAINS
    diagnostics_interval_s: float = 10.0
    probe_timeout_s: float = 1.0
    max_probes_in_flight: int = 4

    wrap_tolerance: float = 0.10
    """Fraction of a counter's range treated as wraparound (see engine.delta)."""
    detect_32bit_counters: bool = False
    """Also treat drops from below 2**32 as 32-bit wraps on 64-bit platforms."""

    event_capacity: int = 1000
    event_rate_ceiling: int = 100
    history_capacity: int = 120
    interface_grace_period_s: float = 30.0
    interface_refresh_ticks: int = 10

    high_traffic_threshold: int = 100_000_000
    """Aggregate bytes/s above which high-performance mode engages."""
    high_packet_threshold: int = 100_000
    high_performance_factor: int = 2
    load_cooldown_ticks: int = 10
    analysis_interval_ticks: int = 1

    def __post_init__(self):
        # Normalize lists coming from callers into tuples
        for name in ('interfaces', 'diagnostic_targets', 'dns_domains'):
            value = getattr(self, name)
            if not isinstance(value, tuple):
                object.__setattr__(self, name, _as_tuple(value))
        self.validate()

    @property
    def refresh_interval(self) -> float:
        """Refresh interval in seconds."""
        return self.refresh_interval_ms / 1000.0

    @property
    def monitors_all(self) -> bool:
        return not self.interfaces

    def validate(self) -> None:
        validate_refresh_interval(self.refresh_interval_ms)
        validate_average_window(self.average_window_s)
        for name in self.interfaces:
            try:
                validate_interface_name(name)
            except InvalidName as e:
                raise ConfigError(str(e)) from e
        for target in self.diagnostic_targets + self.dns_domains:
            validate_target(target)
        if not 0.0 < self.wrap_tolerance < 1.0:
            raise ConfigError("wrap_tolerance must be between 0 and 1")
        if self.probe_timeout_s <= 0:
            raise ConfigError("probe_timeout_s must be positive")
        positive = (
            'event_capacity', 'event_rate_ceiling', 'history_capacity',
            'max_probes_in_flight', 'high_performance_factor',
            'interface_refresh_ticks', 'analysis_interval_ticks',
        )
        for name in positive:
            if getattr(self, name) < 1:
                raise ConfigError(f"{name} must be at least 1")
        if self.interface_grace_period_s < 0 or self.diagnostics_interval_s < 0:
            raise ConfigError("periods cannot be negative")

    def replace(self, **changes) -> "SamplingConfig":
        """Return a validated copy with some fields changed."""
        return replace(self, **changes)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SamplingConfig":
        """
        Build a config from a flat mapping.

        Accepts both field names and the capitalized keys of the nload-style
        config file (RefreshInterval, AverageWindow, Devices, ...). Devices
        "all" means every interface. Unknown keys are ignored.
        """
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            name = _MAPPING_KEYS.get(key, key)
            if name not in known:
                continue
            kwargs[name] = value

        if 'interfaces' in kwargs:
            devices = _as_tuple(kwargs['interfaces'])
            kwargs['interfaces'] = () if devices in ((), ('all',)) else devices
        for name in ('diagnostic_targets', 'dns_domains'):
            if name in kwargs:
                kwargs[name] = _as_tuple(kwargs[name])
        for name in ('high_performance', 'include_virtual', 'detect_32bit_counters'):
            if name in kwargs:
                kwargs[name] = _as_bool(kwargs[name])
        try:
            if 'refresh_interval_ms' in kwargs:
                kwargs['refresh_interval_ms'] = int(kwargs['refresh_interval_ms'])
            if 'average_window_s' in kwargs:
                kwargs['average_window_s'] = float(kwargs['average_window_s'])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid numeric value: {e}") from e
        return cls(**kwargs)
