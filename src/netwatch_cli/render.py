"""
Plain-text rendering of snapshots, samples, events and probe results.
"""
import time
from typing import Iterable, List

from netwatch.engine.units import TrafficUnit, format_number, format_rate, format_total
from netwatch.models import DiagnosticTarget, ForensicsEvent, InterfaceSample, MonitorSnapshot

NAME_WIDTH = 12
RATE_WIDTH = 14


def snapshot_header() -> str:
    columns = ["Incoming", "Avg in", "Peak in", "Outgoing", "Avg out", "Peak out"]
    return f"{'Device':{NAME_WIDTH}} " + " ".join(f"{c:>{RATE_WIDTH}}" for c in columns) \
        + f" {'Total in':>12} {'Total out':>12}"


def format_snapshot(snapshot: MonitorSnapshot, unit: TrafficUnit = TrafficUnit.HUMAN_BIT) -> List[str]:
    """One line per interface."""
    lines = []
    for snap in snapshot.interfaces:
        if snap.stale:
            lines.append(f"{snap.name:{NAME_WIDTH}} stale: {snap.error or 'no reading'}")
            continue
        rates = [
            snap.rx.instant_rate, snap.rx.average_rate, snap.rx.peak_rate,
            snap.tx.instant_rate, snap.tx.average_rate, snap.tx.peak_rate,
        ]
        columns = " ".join(f"{format_rate(rate, unit):>{RATE_WIDTH}}" for rate in rates)
        lines.append(
            f"{snap.name:{NAME_WIDTH}} {columns} "
            f"{format_total(snap.rx.cumulative_bytes):>12} {format_total(snap.tx.cumulative_bytes):>12}"
        )
    return lines


def format_sample(sample: InterfaceSample) -> str:
    return (f"{sample.name:{NAME_WIDTH}} "
            f"rx {format_number(sample.bytes_recv):>18} B {format_number(sample.packets_recv):>14} pkts  "
            f"tx {format_number(sample.bytes_sent):>18} B {format_number(sample.packets_sent):>14} pkts  "
            f"err {sample.errors_in + sample.errors_out}  drop {sample.drops_in + sample.drops_out}")


def format_event(event: ForensicsEvent) -> str:
    when = time.strftime("%H:%M:%S", time.localtime(event.timestamp))
    subject = f" [{event.subject}]" if event.subject else ""
    return f"{when} {event.severity.label.upper():8} {event.kind.value}{subject} {event.detail}"


def format_target(target: DiagnosticTarget) -> str:
    if target.last_success:
        detail = f"{target.last_rtt_ms:.1f} ms" if target.last_rtt_ms is not None else "ok"
        if target.addresses:
            detail += f" -> {', '.join(target.addresses[:3])}"
    else:
        detail = target.last_error or "not probed"
        if target.consecutive_failures:
            detail += f" ({target.consecutive_failures} consecutive failures)"
    return f"{target.kind.value:13} {target.target:24} {target.status:9} {detail}"


def format_events(events: Iterable[ForensicsEvent]) -> List[str]:
    return [format_event(event) for event in events]
