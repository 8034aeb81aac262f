"""
Exception hierarchy for netwatch.

Reader and probe errors are per data point: the scheduler records them and
moves on. Only NoInterfacesError, ConfigError and InvalidName for explicitly
configured interfaces stop a monitor from starting.
"""


class NetwatchError(Exception):
    """Base class for all netwatch errors."""


class ConfigError(NetwatchError):
    """Invalid sampling configuration."""


class NoInterfacesError(NetwatchError):
    """No interfaces available on the host and none were specified."""


# Platform reader

class ReaderError(NetwatchError):
    """Failure while acquiring counters from the platform."""


class DeviceNotFound(ReaderError):
    def __init__(self, name: str):
        super().__init__(f"Device not found: {name}")
        self.name = name


class PermissionDenied(ReaderError):
    def __init__(self, name: str, reason: str = ""):
        message = f"Permission denied: {name}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.name = name


class ParseError(ReaderError):
    """A counter line or value could not be parsed."""


class InvalidName(ReaderError):
    def __init__(self, name: str, reason: str):
        super().__init__(f"Invalid interface name {name!r}: {reason}")
        self.name = name
        self.reason = reason


# Diagnostics

class DiagnosticsError(NetwatchError):
    """Base class for probe failures. Never raised past the prober."""


class ProbeTimeout(DiagnosticsError):
    def __init__(self, target: str, timeout: float):
        super().__init__(f"Probe to {target} timed out after {timeout:.2f}s")
        self.target = target
        self.timeout = timeout


class ResolutionFailure(DiagnosticsError):
    def __init__(self, domain: str, reason: str = ""):
        message = f"Could not resolve {domain}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.domain = domain


# Forensics

class AnalysisFailure(NetwatchError):
    """An analysis pass failed. Always caught at the forensics boundary."""

    def __init__(self, analyzer: str, cause: BaseException):
        super().__init__(f"Analyzer {analyzer} failed: {cause!r}")
        self.analyzer = analyzer
        self.cause = cause
