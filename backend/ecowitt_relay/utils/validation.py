"""
Input Validation Utilities
===========================

Parsing helpers for station payload values and operator input.

The numeric and duration grammars follow what Ecowitt relays have always
accepted (Go's strconv/time parsing), so that a station which worked before
keeps producing the same series.
"""

import math
import re
from typing import Tuple


# Decimal float: 12, -3.5, .5, 1e3, 2.5E-4
_DECIMAL_FLOAT = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$')

# Hex float with a mandatory binary exponent: 0x1.8p3
_HEX_FLOAT = re.compile(r'^[+-]?0[xX]([0-9a-fA-F]+(\.[0-9a-fA-F]*)?|\.[0-9a-fA-F]+)[pP][+-]?\d+$')

_SPECIAL_FLOATS = {
    "inf": math.inf,
    "+inf": math.inf,
    "-inf": -math.inf,
    "infinity": math.inf,
    "+infinity": math.inf,
    "-infinity": -math.inf,
    "nan": math.nan,
}

# Everything after the "ecowitt_relay_" prefix must stay a legal metric name
_METRIC_NAME_TAIL = re.compile(r'^[a-zA-Z0-9_:]*$')

_DURATION_PART = re.compile(r'(\d*\.?\d*)(ns|us|µs|μs|ms|s|m|h)')

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_float(text: str) -> float:
    """
    Parse a station value as a 64-bit float.

    Accepts decimal and exponent forms, hex floats, and the special values
    NaN / Inf / Infinity (case-insensitive). Rejects surrounding whitespace,
    digit separators and finite literals that overflow to infinity.

    Args:
        text: Raw value from the report

    Returns:
        The parsed value

    Raises:
        ValueError: If the value is not a number
    """
    special = _SPECIAL_FLOATS.get(text.lower())
    if special is not None:
        return special

    if _DECIMAL_FLOAT.match(text):
        value = float(text)
    elif _HEX_FLOAT.match(text):
        value = float.fromhex(text)
    else:
        raise ValueError(f"invalid syntax: {text!r}")

    if math.isinf(value):
        raise ValueError(f"value out of range: {text!r}")
    return value


def is_valid_metric_field(field: str) -> bool:
    """Check that a field name can be embedded in a Prometheus metric name."""
    return bool(_METRIC_NAME_TAIL.match(field))


def parse_duration(text: str) -> float:
    """
    Parse a duration such as "90s", "5m" or "1h30m" into seconds.

    A bare "0" is accepted. Negative durations are returned as negative
    numbers; callers treat anything <= 0 as "disabled".

    Raises:
        ValueError: If the duration is malformed
    """
    original = text
    text = text.strip()
    if not text:
        raise ValueError("empty duration")

    sign = 1.0
    if text[0] in "+-":
        if text[0] == "-":
            sign = -1.0
        text = text[1:]

    if text == "0":
        return 0.0

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if not match or match.group(1) in ("", "."):
            raise ValueError(f"invalid duration {original!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    return sign * total


def parse_listen_address(address: str) -> Tuple[str, int]:
    """
    Split a "host:port" listen address.

    An empty host (":8080") binds every interface. IPv6 hosts may be
    bracketed ("[::1]:8080").
    """
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {address!r}")

    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"invalid port in address {address!r}")
    if not 0 <= port_number <= 65535:
        raise ValueError(f"port out of range in address {address!r}")

    host = host.strip("[]") or "0.0.0.0"
    return host, port_number
