"""
Sampling scheduler.

One tick reads every monitored interface, turns the readings into deltas,
feeds the aggregator, runs forensics analysis and kicks off diagnostics,
then publishes an immutable MonitorSnapshot.

The scheduler thread is the only writer of the interface table, the
aggregator and the forensics buffer. Consumers call latest_snapshot() or
wait_for_update(); both hold the snapshot lock only long enough to grab a
reference.

Per-interface updates are atomic: the delta is computed first, then the
aggregator and the InterfaceState are updated together. A stop request
between two interfaces abandons the rest of the tick without publishing.
"""
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Set, Tuple

from ..config import SamplingConfig
from ..errors import InvalidName, NoInterfacesError, ReaderError
from ..forensics.analyzers import AnalysisContext
from ..models.events import EventKind, ForensicsEvent, Severity
from ..models.sample import CounterDelta, InterfaceSample
from ..models.snapshot import InterfaceSnapshot, MonitorSnapshot
from ..readers.base import ICounterReader
from ..validation import validate_interface_name
from .aggregator import StatisticsAggregator
from .delta import CounterDeltaEngine

logger = logging.getLogger(__name__)

# Consecutive probe failures before a target is reported to forensics
PROBE_FAILURE_THRESHOLD = 3


class SchedulerState(Enum):
    IDLE = "idle"
    SAMPLING = "sampling"
    STOPPED = "stopped"


@dataclass
class InterfaceState:
    """Scheduler-owned bookkeeping for one interface."""
    name: str
    last_sample: Optional[InterfaceSample] = None
    last_seen: Optional[float] = None
    """Timestamp of the latest successful read."""
    cumulative_bytes: int = 0
    cumulative_packets: int = 0
    stale: bool = False
    error: Optional[str] = None
    consecutive_failures: int = 0
    missing_since: Optional[float] = None
    """Monotonic time the interface vanished from the platform's list."""


class SamplingScheduler:
    """
    Drives periodic collection and adapts its cadence to load.

    Usage:
        scheduler = SamplingScheduler(create_reader(), SamplingConfig())
        scheduler.start()
        snapshot = scheduler.wait_for_update(0, timeout=5)
        scheduler.stop()
    """

    def __init__(self,
                 reader: ICounterReader,
                 config: Optional[SamplingConfig] = None,
                 forensics=None,
                 prober=None,
                 clock: Callable[[], float] = time.monotonic,
                 wall_clock: Callable[[], float] = time.time):
        self.reader = reader
        self.forensics = forensics
        self.prober = prober
        self._clock = clock
        self._wall_clock = wall_clock

        self._config = config or SamplingConfig()
        self._pending_config: Optional[SamplingConfig] = None
        self._config_lock = threading.Lock()

        self._delta_engine = self._new_delta_engine(self._config)
        self.aggregator = self._new_aggregator(self._config)
        self._states: Dict[str, InterfaceState] = {}
        self._resolved = False

        self.state = SchedulerState.IDLE
        self.high_performance = False
        self._calm_ticks = 0
        self._tick_count = 0
        self._last_diagnostics: Optional[float] = None
        self._failing_targets: Set[Tuple[object, str]] = set()

        self._snapshot: Optional[MonitorSnapshot] = None
        self._version = 0
        self._published = threading.Condition()

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @staticmethod
    def _new_delta_engine(config: SamplingConfig) -> CounterDeltaEngine:
        return CounterDeltaEngine(config.wrap_tolerance, config.detect_32bit_counters)

    @staticmethod
    def _new_aggregator(config: SamplingConfig) -> StatisticsAggregator:
        return StatisticsAggregator(config.average_window_s, config.history_capacity)

    @property
    def config(self) -> SamplingConfig:
        return self._config

    @property
    def tick_count(self) -> int:
        return self._tick_count

    def interface_states(self) -> Dict[str, InterfaceState]:
        return dict(self._states)

    # Cadence

    @property
    def effective_interval(self) -> float:
        """Seconds between ticks, stretched while in high-performance mode."""
        interval = self._config.refresh_interval
        if self.high_performance:
            interval *= self._config.high_performance_factor
        return interval

    @property
    def analysis_stride(self) -> int:
        stride = self._config.analysis_interval_ticks
        if self.high_performance:
            stride *= self._config.high_performance_factor
        return stride

    @property
    def diagnostics_interval(self) -> float:
        interval = self._config.diagnostics_interval_s
        if self.high_performance:
            interval *= self._config.high_performance_factor
        return interval

    # Interfaces

    def resolve_interfaces(self) -> List[str]:
        """
        Build the interface table from the configuration.

        Raises InvalidName for a bad explicit name and NoInterfacesError when
        nothing is configured and the platform lists nothing.
        """
        names = self._interface_names(self._config)
        self._install_interfaces(names)
        return names

    def _interface_names(self, config: SamplingConfig) -> List[str]:
        """Interfaces `config` selects; validates without touching the table."""
        if config.interfaces:
            for name in config.interfaces:
                try:
                    validate_interface_name(name)
                except InvalidName:
                    if self.forensics is not None:
                        self.forensics.record_invalid_input("interface", name, "config")
                    raise
            names = list(config.interfaces)
        else:
            try:
                names = sorted(self.reader.list_interfaces(include_virtual=config.include_virtual))
            except ReaderError as e:
                raise NoInterfacesError(f"Cannot list interfaces: {e}") from e
            if not names:
                raise NoInterfacesError("No network interfaces available and none specified")
        return names

    def _install_interfaces(self, names: List[str]) -> None:
        for name in names:
            if name not in self._states:
                self._states[name] = InterfaceState(name)
        for name in list(self._states):
            if name not in names:
                self._forget(name)
        self._resolved = True
        logger.info(f"Monitoring {len(names)} interface(s): {', '.join(names)}")

    def _forget(self, name: str) -> None:
        self._states.pop(name, None)
        if name in self.aggregator:
            self.aggregator.remove(name)

    def _refresh_interfaces(self, now: float) -> None:
        """Pick up new interfaces and retire ones gone longer than the grace period."""
        config = self._config
        try:
            listed = self.reader.list_interfaces(include_virtual=config.include_virtual)
        except ReaderError as e:
            logger.warning(f"Interface list refresh failed: {e}")
            return

        for name in sorted(listed - set(self._states)):
            self._states[name] = InterfaceState(name)
            logger.info(f"Interface appeared: {name}")

        for name, state in list(self._states.items()):
            if name in listed:
                state.missing_since = None
                continue
            if state.missing_since is None:
                state.missing_since = now
                logger.debug(f"Interface {name} missing from the platform list")
            elif now - state.missing_since > config.interface_grace_period_s:
                self._forget(name)
                logger.info(f"Interface removed: {name}")
                self._record(ForensicsEvent(
                    kind=EventKind.INTERFACE_REMOVED,
                    severity=Severity.LOW,
                    subject=name,
                    detail=f"gone for more than {config.interface_grace_period_s:.0f}s",
                    timestamp=self._wall_clock(),
                ))

    # Configuration

    def reload(self, config: SamplingConfig) -> None:
        """Replace the configuration; takes effect at the start of the next tick."""
        with self._config_lock:
            self._pending_config = config

    def _apply_pending_config(self) -> None:
        with self._config_lock:
            new, self._pending_config = self._pending_config, None
        if new is None:
            return

        old = self._config
        # Resolve first so a rejected reload leaves everything as it was
        names = None
        if (new.interfaces, new.include_virtual) != (old.interfaces, old.include_virtual):
            try:
                names = self._interface_names(new)
            except (InvalidName, NoInterfacesError) as e:
                logger.warning(f"Reloaded configuration rejected: {e}")
                return

        self._config = new
        if (new.average_window_s, new.history_capacity) != (old.average_window_s, old.history_capacity):
            self.aggregator = self._new_aggregator(new)
            logger.info("Averaging window changed, statistics restarted")
        if (new.wrap_tolerance, new.detect_32bit_counters) != (old.wrap_tolerance, old.detect_32bit_counters):
            self._delta_engine = self._new_delta_engine(new)
        if names is not None:
            self._install_interfaces(names)
        if self.forensics is not None:
            self.forensics.tick_budget = self.effective_interval
        logger.info("Configuration reloaded")

    # Tick

    def _record(self, event: ForensicsEvent) -> None:
        if self.forensics is not None:
            self.forensics.record(event)

    def _apply_sample(self, state: InterfaceState, sample: InterfaceSample) -> Optional[CounterDelta]:
        previous = state.last_sample
        if previous is None:
            state.last_sample = sample
            state.last_seen = sample.timestamp
            state.stale = False
            state.error = None
            state.consecutive_failures = 0
            return None

        delta = self._delta_engine.delta(previous, sample)
        if delta is None:
            logger.debug(f"Ignoring out-of-order sample for {state.name}")
            return None

        self.aggregator.record(state.name, delta)
        state.last_sample = sample
        state.last_seen = sample.timestamp
        state.cumulative_bytes += delta.total_bytes
        state.cumulative_packets += delta.total_packets
        state.stale = False
        state.error = None
        state.consecutive_failures = 0

        if delta.wrapped:
            logger.debug(f"Counter wraparound on {state.name}: {', '.join(delta.wrapped)}")
        if delta.reset:
            logger.info(f"Counter reset on {state.name}: {', '.join(delta.reset)}")
            self._record(ForensicsEvent(
                kind=EventKind.COUNTER_RESET,
                severity=Severity.LOW,
                subject=state.name,
                detail=f"counters restarted: {', '.join(delta.reset)}",
                timestamp=self._wall_clock(),
            ))
        return delta

    def _mark_stale(self, state: InterfaceState, error: ReaderError) -> None:
        state.stale = True
        state.error = str(error)
        state.consecutive_failures += 1
        logger.debug(f"Read failed for {state.name}: {error}")

    def _interface_snapshot(self, state: InterfaceState) -> InterfaceSnapshot:
        if state.name in self.aggregator:
            return self.aggregator.snapshot(state.name, stale=state.stale, error=state.error)
        return InterfaceSnapshot(name=state.name, stale=state.stale, error=state.error)

    def _evaluate_load(self, snapshots: List[InterfaceSnapshot]) -> None:
        config = self._config
        live = [snap for snap in snapshots if not snap.stale]
        byte_rate = sum(snap.total_rate for snap in live)
        packet_rate = sum(snap.total_packet_rate for snap in live)
        event_rate = self.forensics.event_rate() if self.forensics is not None else 0

        overloaded = (byte_rate > config.high_traffic_threshold
                      or packet_rate > config.high_packet_threshold
                      or event_rate > config.event_rate_ceiling)

        if config.high_performance or overloaded:
            self._calm_ticks = 0
            if not self.high_performance:
                reason = "requested" if config.high_performance else (
                    f"{byte_rate:.0f} B/s, {packet_rate:.0f} pkt/s, {event_rate} events/s")
                self._set_high_performance(True, reason)
        elif self.high_performance:
            self._calm_ticks += 1
            if self._calm_ticks >= config.load_cooldown_ticks:
                self._set_high_performance(False, f"calm for {self._calm_ticks} ticks")

    def _set_high_performance(self, enabled: bool, reason: str) -> None:
        self.high_performance = enabled
        self._calm_ticks = 0
        state = "enabled" if enabled else "disabled"
        logger.info(f"High-performance mode {state} ({reason}), interval {self.effective_interval:.2f}s")
        if self.forensics is not None:
            self.forensics.set_high_performance_mode(enabled)
            self.forensics.tick_budget = self.effective_interval

    def _run_diagnostics(self, now: float) -> None:
        if self.prober is None:
            return
        if self._last_diagnostics is None or now - self._last_diagnostics >= self.diagnostics_interval:
            if self.prober.start_round():
                self._last_diagnostics = now

        for target in self.prober.results():
            key = (target.kind, target.target)
            if target.consecutive_failures < PROBE_FAILURE_THRESHOLD:
                self._failing_targets.discard(key)
            elif key not in self._failing_targets:
                self._failing_targets.add(key)
                self._record(ForensicsEvent(
                    kind=EventKind.PROBE_FAILURE,
                    severity=Severity.HIGH,
                    subject=target.target,
                    detail=f"{target.kind.value} probe failed {target.consecutive_failures} times: "
                           f"{target.last_error}",
                    timestamp=self._wall_clock(),
                ))

    def tick(self) -> Optional[MonitorSnapshot]:
        """
        Run one sampling pass and publish its snapshot.

        Returns the published snapshot, or the previous one when a stop was
        requested during the pass.
        """
        if self._stop_event.is_set():
            return self.latest_snapshot()

        self.state = SchedulerState.SAMPLING
        try:
            self._apply_pending_config()
            if not self._resolved:
                self.resolve_interfaces()
            now = self._clock()
            self._tick_count += 1

            if self._config.monitors_all and self._tick_count % self._config.interface_refresh_ticks == 0:
                self._refresh_interfaces(now)

            names = sorted(self._states)
            results = self.reader.read_all(names)
            deltas: Dict[str, CounterDelta] = {}
            for name in names:
                if self._stop_event.is_set():
                    logger.debug("Stop requested, abandoning tick")
                    return self.latest_snapshot()
                state = self._states[name]
                result = results.get(name)
                if result is None:
                    result = ReaderError(f"No reading returned for {name}")
                if isinstance(result, ReaderError):
                    self._mark_stale(state, result)
                    continue
                delta = self._apply_sample(state, result)
                if delta is not None:
                    deltas[name] = delta

            interfaces = [self._interface_snapshot(self._states[name]) for name in names]
            self._evaluate_load(interfaces)

            self._version += 1
            snapshot = MonitorSnapshot(
                version=self._version,
                timestamp=now,
                interfaces=tuple(interfaces),
                effective_interval=self.effective_interval,
                high_performance=self.high_performance,
            )

            if self.forensics is not None and self._tick_count % self.analysis_stride == 0:
                self.forensics.run_analysis(AnalysisContext(
                    snapshot=snapshot,
                    deltas=deltas,
                    timestamp=self._wall_clock(),
                    high_performance=self.high_performance,
                ))

            self._run_diagnostics(now)
            self._publish(snapshot)
            logger.debug(f"Tick {self._tick_count}: {len(deltas)}/{len(names)} interfaces updated")
            return snapshot
        finally:
            if self.state is SchedulerState.SAMPLING:
                self.state = SchedulerState.IDLE

    # Publication

    def _publish(self, snapshot: MonitorSnapshot) -> None:
        with self._published:
            self._snapshot = snapshot
            self._published.notify_all()

    def latest_snapshot(self) -> Optional[MonitorSnapshot]:
        with self._published:
            return self._snapshot

    def wait_for_update(self, after_version: int = 0, timeout: Optional[float] = None) -> Optional[MonitorSnapshot]:
        """Block until a snapshot newer than `after_version` exists; None on timeout."""
        def newer():
            return self._snapshot is not None and self._snapshot.version > after_version

        with self._published:
            if self._published.wait_for(newer, timeout):
                return self._snapshot
            return None

    # Loop

    def _loop(self, max_ticks: Optional[int] = None) -> None:
        ticks = 0
        while not self._stop_event.is_set():
            started = self._clock()
            try:
                self.tick()
            except Exception:
                # Keep collecting; the next tick retries everything
                logger.exception("Sampling tick failed")
            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break
            remaining = self.effective_interval - (self._clock() - started)
            self._stop_event.wait(max(0.0, remaining))

    def start(self) -> None:
        """Resolve interfaces, then run the loop on a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("Scheduler already running")
        self.resolve_interfaces()
        self._stop_event.clear()
        self.state = SchedulerState.IDLE
        self._thread = threading.Thread(target=self._loop, name="netwatch-scheduler", daemon=True)
        self._thread.start()

    def run_forever(self, max_ticks: Optional[int] = None) -> None:
        """Run the loop on the calling thread until stop() or `max_ticks` ticks."""
        self.resolve_interfaces()
        self._stop_event.clear()
        try:
            self._loop(max_ticks)
        finally:
            self.state = SchedulerState.STOPPED

    def stop(self, timeout: Optional[float] = 5.0, probe_grace: float = 1.0) -> None:
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Scheduler thread did not stop within the timeout")
        if self.prober is not None:
            self.prober.shutdown(probe_grace)
        self.state = SchedulerState.STOPPED

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
