"""
Input validation for values that reach a filesystem path, a system query or
a subprocess argument.

Interface names are checked against an allow-list before any reader builds a
path from them, so names such as "../../etc/passwd" never reach open().
"""
import ipaddress
import re

from .errors import ConfigError, InvalidName

# IFNAMSIZ is 16 on Linux, including the terminating NUL
MAX_INTERFACE_NAME_LEN = 15

MIN_REFRESH_INTERVAL_MS = 100
MAX_REFRESH_INTERVAL_MS = 60_000

MIN_AVERAGE_WINDOW_S = 1
MAX_AVERAGE_WINDOW_S = 86_400

MAX_HOSTNAME_LEN = 253
MAX_CONFIG_STRING_LEN = 1024

_INTERFACE_NAME_RE = re.compile(r'^[A-Za-z0-9][A-Za-z0-9_.\-]*$')
_HOST_LABEL_RE = re.compile(r'^(?!-)[A-Za-z0-9\-]{1,63}(?<!-)$')
_DANGEROUS_PATTERNS = ("$(", "`", "${", "&&", "||", ";", "|", ">", "<", "&")


def validate_interface_name(name: str) -> str:
    """
    Check a network interface name and return it unchanged.

    Accepted: ASCII letters, digits, '-', '_' and '.' (VLAN names such as
    eth0.100), at most MAX_INTERFACE_NAME_LEN characters, not starting with
    a separator. Rejected with InvalidName: empty names, '/', '..',
    whitespace, NUL and other control characters.
    """
    if not isinstance(name, str):
        raise InvalidName(repr(name), "not a string")
    if not name:
        raise InvalidName(name, "empty")
    if len(name) > MAX_INTERFACE_NAME_LEN:
        raise InvalidName(name, f"longer than {MAX_INTERFACE_NAME_LEN} characters")
    if '/' in name or '\\' in name or '..' in name:
        raise InvalidName(name, "path separators are not allowed")
    if any(ch.isspace() or ord(ch) < 32 or ord(ch) == 127 for ch in name):
        raise InvalidName(name, "whitespace or control characters")
    if not _INTERFACE_NAME_RE.match(name):
        raise InvalidName(name, "only letters, digits, '-', '_' and '.' are allowed")
    return name


def is_valid_interface_name(name: str) -> bool:
    try:
        validate_interface_name(name)
    except InvalidName:
        return False
    return True


def validate_refresh_interval(interval_ms: int) -> int:
    if interval_ms < MIN_REFRESH_INTERVAL_MS:
        raise ConfigError(
            f"Refresh interval too small (minimum {MIN_REFRESH_INTERVAL_MS} ms)")
    if interval_ms > MAX_REFRESH_INTERVAL_MS:
        raise ConfigError(
            f"Refresh interval too large (maximum {MAX_REFRESH_INTERVAL_MS} ms)")
    return interval_ms


def validate_average_window(window_s: float) -> float:
    if window_s < MIN_AVERAGE_WINDOW_S or window_s > MAX_AVERAGE_WINDOW_S:
        raise ConfigError(
            f"Average window must be between {MIN_AVERAGE_WINDOW_S} "
            f"and {MAX_AVERAGE_WINDOW_S} seconds")
    return window_s


def validate_config_string(value: str, field_name: str) -> str:
    """Reject control characters and shell metacharacters in a config value."""
    if len(value) > MAX_CONFIG_STRING_LEN:
        raise ConfigError(f"Configuration value too long for field: {field_name}")
    if any(ord(ch) < 32 and ch not in '\n\t' for ch in value) or '\x7f' in value:
        raise ConfigError(f"Invalid characters in configuration field: {field_name}")
    for pattern in _DANGEROUS_PATTERNS:
        if pattern in value:
            raise ConfigError(f"Suspicious pattern detected in field: {field_name}")
    return value


def validate_target(target: str) -> str:
    """Accept an IP address or an RFC 1123 host name."""
    validate_config_string(target, "target")
    try:
        ipaddress.ip_address(target)
        return target
    except ValueError:
        pass

    host = target[:-1] if target.endswith('.') else target
    if not host or len(host) > MAX_HOSTNAME_LEN:
        raise ConfigError(f"Invalid diagnostic target: {target!r}")
    if not all(_HOST_LABEL_RE.match(label) for label in host.split('.')):
        raise ConfigError(f"Invalid diagnostic target: {target!r}")
    return target
