"""
Report Parser
=============

Turns the raw body an Ecowitt station POSTs into a Report.

Stations use the "Customized" upload protocol in Ecowitt mode: a form-encoded
body such as

    PASSKEY=ABC123&stationtype=EasyWeatherV1.6.4&dateutc=2023-01-01+10:00:00
    &tempinf=71.6&humidityin=40&baromrelin=29.92&tempf=72.5&model=GW1100A

Decoding is strict about the encoding itself (bad percent escapes, semicolon
separators and non UTF-8 bodies reject the whole report) and lenient about
values (one bad number only drops that field).
"""

import logging
import re
from typing import Optional
from urllib.parse import unquote_plus

from ecowitt_relay.errors import ReportDecodeError
from ecowitt_relay.models import UNKNOWN, Report
from ecowitt_relay.utils.validation import is_valid_metric_field, parse_float

logger = logging.getLogger(__name__)


# Identity and metadata keys, never emitted as measurements
RESERVED_FIELDS = ("dateutc", "PASSKEY", "model", "stationtype", "freq")

_BAD_ESCAPE = re.compile(r'%(?![0-9a-fA-F]{2})')


def _unescape(component: str) -> str:
    if _BAD_ESCAPE.search(component):
        raise ReportDecodeError(f"invalid URL escape in {component!r}")
    try:
        return unquote_plus(component, errors="strict")
    except UnicodeDecodeError as e:
        raise ReportDecodeError(f"invalid UTF-8 escape in {component!r}") from e


def decode_form(body: bytes) -> dict[str, list[str]]:
    """
    Decode a URL-encoded body into a multi-valued mapping.

    Empty segments are ignored and a key without "=" maps to "".

    Raises:
        ReportDecodeError: If the body is not a valid URL-encoded form
    """
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ReportDecodeError("body is not valid UTF-8") from e

    values: dict[str, list[str]] = {}
    for segment in text.split("&"):
        if ";" in segment:
            raise ReportDecodeError("invalid semicolon separator in query")
        if not segment:
            continue
        key, _, value = segment.partition("=")
        values.setdefault(_unescape(key), []).append(_unescape(value))
    return values


def _first(values: dict[str, list[str]], key: str) -> str:
    found = values.get(key)
    return found[0] if found else ""


def parse_report(body: bytes, source_ip: Optional[str] = None) -> Report:
    """
    Build a Report from a station body.

    Args:
        body: Raw request body
        source_ip: Address taken from the reverse-proxy header, if any

    Returns:
        The report, with every numeric field in measurements and the
        unusable ones listed in skipped

    Raises:
        ReportDecodeError: If the body is not URL-encoded
    """
    values = decode_form(body)

    report = Report(
        model=_first(values, "model") or UNKNOWN,
        station_type=_first(values, "stationtype") or UNKNOWN,
        source_ip=source_ip or UNKNOWN,
    )

    for key in RESERVED_FIELDS:
        values.pop(key, None)

    for field, raw in values.items():
        if not is_valid_metric_field(field):
            logger.warning(f"field name {field!r} cannot be used as a metric name, skipping")
            report.skipped.append(field)
            continue
        try:
            report.measurements[field] = parse_float(raw[0])
        except ValueError:
            logger.warning(f"failed to parse numeric value for {field}: {raw!r}")
            report.skipped.append(field)

    return report
