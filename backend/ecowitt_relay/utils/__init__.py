"""
Utility modules for the relay.
"""

from ecowitt_relay.utils.validation import (
    parse_float,
    parse_duration,
    parse_listen_address,
    is_valid_metric_field,
)

__all__ = [
    "parse_float",
    "parse_duration",
    "parse_listen_address",
    "is_valid_metric_field",
]
