"""
Active connectivity diagnostics.

Reachability targets are probed with one ICMP echo sent through scapy. Raw
sockets need privileges; without them the prober falls back to the system
`ping` binary for the rest of its life. DNS domains are resolved with
socket.getaddrinfo on a resolver thread and waited on with the probe
timeout.

Probes run on a bounded thread pool. Results go into a table of
DiagnosticTarget objects guarded by a lock held only to swap entries.
A failed probe is a result with success=False, never an exception.
"""
import concurrent.futures
import logging
import platform
import re
import socket
import subprocess
import threading
import time
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..errors import ConfigError, ProbeTimeout, ResolutionFailure
from ..models.diagnostics import DiagnosticTarget, ProbeKind, ProbeResult
from ..validation import validate_target

logger = logging.getLogger(__name__)

CRITICAL_FAILURES = 3
# Extra time granted to the ping process to start and exit
PING_GRACE_S = 0.5
DNS_PORT = 80

_RTT_RE = re.compile(r'time[=<]\s*([\d.]+)\s*ms')

METHODS = ("auto", "scapy", "ping")

TargetKey = Tuple[ProbeKind, str]


def parse_ping_rtt(output: str) -> Optional[float]:
    """Round trip in ms from ping output ('time=12.3 ms'), or None."""
    match = _RTT_RE.search(output)
    if match is None:
        return None
    return float(match.group(1))


def ping_command(target: str, timeout: float) -> List[str]:
    # macOS ping takes -W in milliseconds, Linux in seconds
    if platform.system() == "Darwin":
        wait = str(max(1, int(timeout * 1000)))
    else:
        wait = str(max(1, int(round(timeout))))
    return ["ping", "-c", "1", "-W", wait, target]


class DiagnosticsProber:
    """Concurrent, timeout-bounded reachability and DNS probes."""

    def __init__(self,
                 targets: Sequence[str] = (),
                 domains: Sequence[str] = (),
                 timeout: float = 1.0,
                 max_in_flight: int = 4,
                 method: str = "auto",
                 clock: Callable[[], float] = time.monotonic,
                 wall_clock: Callable[[], float] = time.time):
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        if max_in_flight < 1:
            raise ValueError("max_in_flight must be at least 1")
        if method not in METHODS:
            raise ValueError(f"method must be one of {', '.join(METHODS)}")

        self.timeout = timeout
        self.max_in_flight = max_in_flight
        self.method = method
        self._clock = clock
        self._wall_clock = wall_clock

        self._lock = threading.Lock()
        self._table: Dict[TargetKey, DiagnosticTarget] = {}
        for target in targets:
            self._table[(ProbeKind.REACHABILITY, target)] = DiagnosticTarget(target, ProbeKind.REACHABILITY)
        for domain in domains:
            self._table[(ProbeKind.DNS, domain)] = DiagnosticTarget(domain, ProbeKind.DNS)

        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_in_flight, thread_name_prefix="netwatch-probe")
        # getaddrinfo cannot be interrupted, so it runs apart from the probe workers
        self._resolver = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_in_flight, thread_name_prefix="netwatch-dns")
        self._pending: List[concurrent.futures.Future] = []
        self._stopping = threading.Event()
        self.rounds = 0

    @classmethod
    def from_config(cls, config, **kwargs) -> "DiagnosticsProber":
        return cls(config.diagnostic_targets, config.dns_domains,
                   timeout=config.probe_timeout_s,
                   max_in_flight=config.max_probes_in_flight,
                   **kwargs)

    # Single probes

    def probe(self, target: str) -> ProbeResult:
        """Probe one configured target or domain (unknown names are pinged)."""
        with self._lock:
            is_domain = (ProbeKind.DNS, target) in self._table and \
                (ProbeKind.REACHABILITY, target) not in self._table
        if is_domain:
            return self.probe_dns(target)
        return self.probe_reachability(target)

    def _failure(self, target: str, kind: ProbeKind, error: str) -> ProbeResult:
        return ProbeResult(target=target, kind=kind, success=False, error=error,
                           timestamp=self._wall_clock())

    def probe_reachability(self, target: str) -> ProbeResult:
        try:
            validate_target(target)
        except ConfigError as e:
            return self._failure(target, ProbeKind.REACHABILITY, str(e))

        if self.method in ("auto", "scapy"):
            try:
                return self._probe_icmp(target)
            except PermissionError as e:
                if self.method == "scapy":
                    return self._failure(target, ProbeKind.REACHABILITY, f"ICMP probe not permitted: {e}")
                logger.info("No raw socket privileges, falling back to the ping command")
                self.method = "ping"
        return self._probe_ping(target)

    def _probe_icmp(self, target: str) -> ProbeResult:
        from scapy.all import ICMP, IP, sr1

        started = self._clock()
        reply = sr1(IP(dst=target) / ICMP(), timeout=self.timeout, verbose=0)
        elapsed_ms = (self._clock() - started) * 1000.0
        if reply is None:
            return self._failure(target, ProbeKind.REACHABILITY, str(ProbeTimeout(target, self.timeout)))
        if not reply.haslayer(ICMP) or reply[ICMP].type != 0:
            return self._failure(target, ProbeKind.REACHABILITY, f"Unexpected reply from {target}: {reply.summary()}")
        return ProbeResult(target=target, kind=ProbeKind.REACHABILITY, success=True,
                           round_trip_ms=elapsed_ms, timestamp=self._wall_clock())

    def _probe_ping(self, target: str) -> ProbeResult:
        started = self._clock()
        try:
            completed = subprocess.run(
                ping_command(target, self.timeout),
                capture_output=True,
                text=True,
                timeout=self.timeout + PING_GRACE_S,
            )
        except subprocess.TimeoutExpired:
            return self._failure(target, ProbeKind.REACHABILITY, str(ProbeTimeout(target, self.timeout)))
        except OSError as e:
            return self._failure(target, ProbeKind.REACHABILITY, f"Cannot run ping: {e}")

        if completed.returncode != 0:
            return self._failure(target, ProbeKind.REACHABILITY, f"{target} unreachable")
        rtt = parse_ping_rtt(completed.stdout)
        if rtt is None:
            rtt = (self._clock() - started) * 1000.0
        return ProbeResult(target=target, kind=ProbeKind.REACHABILITY, success=True,
                           round_trip_ms=rtt, timestamp=self._wall_clock())

    def probe_dns(self, domain: str) -> ProbeResult:
        try:
            validate_target(domain)
        except ConfigError as e:
            return self._failure(domain, ProbeKind.DNS, str(e))

        started = self._clock()
        future = self._resolver.submit(socket.getaddrinfo, domain, DNS_PORT, 0, socket.SOCK_STREAM)
        try:
            infos = future.result(timeout=self.timeout)
        except concurrent.futures.TimeoutError:
            return self._failure(domain, ProbeKind.DNS, str(ProbeTimeout(domain, self.timeout)))
        except (socket.gaierror, OSError, UnicodeError) as e:
            return self._failure(domain, ProbeKind.DNS, str(ResolutionFailure(domain, str(e))))

        elapsed_ms = (self._clock() - started) * 1000.0
        addresses = tuple(dict.fromkeys(info[4][0] for info in infos))
        if not addresses:
            return self._failure(domain, ProbeKind.DNS, str(ResolutionFailure(domain, "no addresses")))
        return ProbeResult(target=domain, kind=ProbeKind.DNS, success=True, round_trip_ms=elapsed_ms,
                           addresses=addresses, timestamp=self._wall_clock())

    # Rounds

    def _run(self, key: TargetKey) -> Optional[ProbeResult]:
        if self._stopping.is_set():
            return None
        kind, target = key
        if kind is ProbeKind.DNS:
            result = self.probe_dns(target)
        else:
            result = self.probe_reachability(target)
        self._apply(key, result)
        return result

    def _apply(self, key: TargetKey, result: ProbeResult) -> None:
        with self._lock:
            current = self._table.get(key)
            if current is None:
                return
            self._table[key] = current.updated(result)
        if not result.success:
            logger.debug(f"Probe {key[1]} failed: {result.error}")

    def _keys(self) -> List[TargetKey]:
        with self._lock:
            return list(self._table)

    def probe_all(self) -> List[ProbeResult]:
        """Run one round and wait for it; returns the results in table order."""
        keys = self._keys()
        futures = [(key, self._executor.submit(self._run, key)) for key in keys]
        results = []
        for key, future in futures:
            kind, target = key
            try:
                result = future.result(timeout=self.timeout + PING_GRACE_S)
            except concurrent.futures.TimeoutError:
                result = self._failure(target, kind, str(ProbeTimeout(target, self.timeout)))
                self._apply(key, result)
            if result is not None:
                results.append(result)
        self.rounds += 1
        return results

    def in_flight(self) -> bool:
        with self._lock:
            self._pending = [future for future in self._pending if not future.done()]
            return bool(self._pending)

    def start_round(self) -> bool:
        """Submit a round without waiting. False if the previous one is still running."""
        if self._stopping.is_set() or self.in_flight():
            return False
        futures = [self._executor.submit(self._run, key) for key in self._keys()]
        with self._lock:
            self._pending = futures
        self.rounds += 1
        return True

    def results(self) -> List[DiagnosticTarget]:
        with self._lock:
            return list(self._table.values())

    def summary(self) -> Dict[str, object]:
        targets = self.results()
        online = [t for t in targets if t.last_success]
        failing = [t for t in targets if t.last_success is False]
        critical = [t.target for t in targets if t.consecutive_failures >= CRITICAL_FAILURES]
        rtts = [t.last_rtt_ms for t in online if t.last_rtt_ms is not None]
        return {
            'total': len(targets),
            'online': len(online),
            'failing': len(failing),
            'critical_issues': critical,
            'average_rtt_ms': sum(rtts) / len(rtts) if rtts else None,
        }

    def shutdown(self, grace: float = 1.0) -> None:
        """Stop accepting probes and give in-flight ones `grace` seconds to finish."""
        self._stopping.set()
        with self._lock:
            pending = list(self._pending)
        if pending:
            concurrent.futures.wait(pending, timeout=grace)
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._resolver.shutdown(wait=False, cancel_futures=True)
