"""
Timestamp parsing and formatting for SigV4.

SigV4 carries two renditions of the request time: the full timestamp
(X-Amz-Date, 20150830T123600Z) and the date stamp used in the credential
scope (20150830). Both are always rendered in UTC.
"""
from datetime import datetime
from pytz import FixedOffset, UTC
from re import compile as re_compile

# strftime formats for the X-Amz-Date header and the credential scope date.
AMZ_DATE_FORMAT = "%Y%m%dT%H%M%SZ"
DATE_STAMP_FORMAT = "%Y%m%d"

_month_names = {
    "Jan": 1, "Feb": 2, "Mar": 3, "Apr": 4, "May": 5, "Jun": 6,
    "Jul": 7, "Aug": 8, "Sep": 9, "Oct": 10, "Nov": 11, "Dec": 12,
}

# ISO 8601 timestamp format regex (includes RFC 3339 and the compact
# X-Amz-Date form)
_iso_8601_regex = re_compile(
    r"^(?P<year>[0-9]{4})-?"
    r"(?P<month>0[1-9]|1[0-2])-?"
    r"(?P<day>0[1-9]|[12][0-9]|3[01])"
    r"[Tt ]"
    r"(?P<hour>[01][0-9]|2[0-3]):?"
    r"(?P<minute>[0-5][0-9]):?"
    r"(?P<second>[0-5][0-9]|60)"
    r"(?P<frac_sec>[\.,][0-9]+)?"
    r"(?P<timezone>[-+][01][0-9]:?[0-5][0-9]|[Zz])$")

# RFC 2822 timestamp format regex (HTTP Date header)
_rfc_2822_regex = re_compile(
    r"^(?:(?P<dow>Mon|Tue|Wed|Thu|Fri|Sat|Sun)\s*,)?\s*"
    r"(?P<day>0?[1-9]|[12][0-9]|3[01])\s+"
    r"(?P<month>Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\s+"
    r"(?P<year>[0-9]{4})\s+"
    r"(?P<hour>[01][0-9]|2[0-3]):"
    r"(?P<minute>[0-5][0-9]):"
    r"(?P<second>[0-5][0-9]|60)\s+"
    r"(?P<timezone>[-+][01][0-9][0-5][0-9]|GMT|UTC)$"
)

def _offset_from_zone(zone):
    """
    Convert a +HHMM / -HH:MM zone designator into a tzinfo.
    """
    zone = zone.replace(":", "")
    assert len(zone) == 5
    minutes = int(zone[1:3]) * 60 + int(zone[3:5])

    if zone[0] == "-":
        minutes = -minutes

    if minutes == 0:
        return UTC

    return FixedOffset(minutes)

def _build(m, month, offset):
    # A leap second is clamped; datetime cannot represent it.
    return datetime(
        year=int(m.group("year")),
        month=month,
        day=int(m.group("day")),
        hour=int(m.group("hour")),
        minute=int(m.group("minute")),
        second=min(int(m.group("second")), 59),
        tzinfo=offset)

def parse_iso8601(s):
    """
    Parse a timestamp formatted in ISO 8601 timestamp format and return a
    timezone-aware datetime. If the string is not a valid ISO 8601 timestamp,
    None is returned.

    Accepted forms include:
        2015-08-30T12:36:00Z
        20150830T123600Z                (X-Amz-Date)
        2015-08-30T05:36:00-07:00
        20150830 053600-0700

    Fractional seconds are ignored.
    """
    m = _iso_8601_regex.match(s)
    if not m:
        return None

    zone = m.group("timezone")
    if zone in ("Z", "z"):
        offset = UTC
    else:
        offset = _offset_from_zone(zone)

    try:
        return _build(m, int(m.group("month")), offset)
    except ValueError:
        # e.g. February 30th
        return None

def parse_rfc2822(s):
    """
    Parse a timestamp formatted per RFC 2822 (as used by the HTTP Date
    header) and return a timezone-aware datetime, or None if the string does
    not match.

        Sun, 30 Aug 2015 12:36:00 GMT
        30 Aug 2015 12:36:00 +0000
    """
    m = _rfc_2822_regex.match(s)
    if not m:
        return None

    zone = m.group("timezone")
    if zone in ("GMT", "UTC"):
        offset = UTC
    else:
        offset = _offset_from_zone(zone)

    try:
        return _build(m, _month_names[m.group("month")], offset)
    except ValueError:
        return None

def parse_timestamp(s):
    """
    Parse an ISO 8601 or RFC 2822 timestamp, returning None if neither
    format matches.
    """
    return parse_iso8601(s.strip()) or parse_rfc2822(s.strip())

def to_utc(timestamp):
    """
    Convert a datetime to UTC. Naive datetimes are taken to already be UTC.
    """
    if timestamp.tzinfo is None:
        return UTC.localize(timestamp)

    return timestamp.astimezone(UTC)

def utc_now():
    """
    The current time as an aware UTC datetime, truncated to whole seconds.
    """
    return datetime.now(UTC).replace(microsecond=0)

def format_amz_date(timestamp):
    """
    Render a datetime in the X-Amz-Date format, YYYYMMDDTHHMMSSZ.
    """
    return to_utc(timestamp).strftime(AMZ_DATE_FORMAT)

def format_date_stamp(timestamp):
    """
    Render the UTC date portion of a datetime as YYYYMMDD.
    """
    return to_utc(timestamp).strftime(DATE_STAMP_FORMAT)

# Local variables:
# mode: Python
# tab-width: 8
# indent-tabs-mode: nil
# End:
# vi: set expandtab tabstop=8
