"""
Validity window of issued certificates

Resolves a requested expiration against the policy default and clamps it to
the CA expiration: no leaf may outlive its issuer.
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from . import config, utils
from .errors import ExceedsIssuerValidityError, InvalidTimestampError, NotInFutureError
from .models import (
    DefaultExpiry,
    ExpirationRequest,
    ExplicitExpiry,
    InheritIssuerExpiry,
)

logger = logging.getLogger(__name__)

_RFC3339 = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?"
    r"(?:([Zz])|([+-])(\d{2}):(\d{2}))"
)


def parse_expiration_request(not_after: Optional[str] = None, inherit: bool = False) -> ExpirationRequest:
    """
    Turn command line input into an expiration request

    Args:
        not_after: RFC 3339 timestamp, the legacy sentinel "CA", or None/""
        inherit: Explicit request to inherit the CA expiration

    Returns:
        ExpirationRequest: DefaultExpiry, InheritIssuerExpiry or ExplicitExpiry
    """
    if inherit:
        if not_after and not_after != config.INHERIT_SENTINEL:
            raise InvalidTimestampError(
                "an explicit expiration cannot be combined with inheriting the CA expiry",
                step="parse not-after",
                field="not_after"
            )
        return InheritIssuerExpiry()
    if not not_after:
        return DefaultExpiry()
    if not_after == config.INHERIT_SENTINEL:
        return InheritIssuerExpiry()
    return ExplicitExpiry(not_after)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an RFC 3339 timestamp (ex: "2027-01-31T12:00:00Z")

    Returns:
        datetime: Timezone-aware datetime, converted to UTC

    Raises:
        InvalidTimestampError: If value is not RFC 3339
    """
    match = _RFC3339.fullmatch(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise InvalidTimestampError(f"unable to parse {value!r} as RFC 3339", step="parse not-after", field="not_after")

    year, month, day, hour, minute, second, fraction, zulu, sign, off_h, off_m = match.groups()

    # datetime keeps microseconds only
    microsecond = int((fraction or "0")[:6].ljust(6, "0"))

    try:
        if zulu:
            tz = timezone.utc
        else:
            # timezone() rejects offsets of 24h or more; minutes must stay below 60
            if int(off_m) > 59:
                raise ValueError(f"offset minutes out of range: {off_m}")
            offset = timedelta(hours=int(off_h), minutes=int(off_m))
            tz = timezone(-offset if sign == "-" else offset)
        parsed = datetime(int(year), int(month), int(day), int(hour), int(minute), int(second), microsecond, tzinfo=tz)
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError) as e:
        raise InvalidTimestampError(
            f"unable to parse {value!r} as RFC 3339: {e}", step="parse not-after", field="not_after"
        ) from e


def resolve_not_after(
        requested: ExpirationRequest,
        default_years: int,
        issuer_not_after: datetime,
        now: Optional[datetime] = None
) -> datetime:
    """
    Compute the notAfter of a leaf certificate

    Rules, in order:
      1. DefaultExpiry: now + default_years (calendar years)
      2. InheritIssuerExpiry: exactly issuer_not_after
      3. ExplicitExpiry: the parsed timestamp, which must be after now
    Whatever the path, the result may not be after issuer_not_after.

    Args:
        requested: Expiration request
        default_years: Policy default validity
        issuer_not_after: Expiration of the CA
        now: Reference time (defaults to the current time)

    Returns:
        datetime: Resolved expiration (UTC)

    Raises:
        InvalidTimestampError: If an explicit timestamp cannot be parsed
        NotInFutureError: If the expiration is not strictly after now
        ExceedsIssuerValidityError: If the expiration is after the CA's
    """
    now = now or utils.now_utc()

    if isinstance(requested, DefaultExpiry):
        not_after = utils.add_years(now, default_years)
    elif isinstance(requested, InheritIssuerExpiry):
        not_after = issuer_not_after
    elif isinstance(requested, ExplicitExpiry):
        not_after = parse_timestamp(requested.value)
        if not not_after > now:
            raise NotInFutureError("not-after must be in the future", step="resolve not-after", field="not_after")
    else:
        raise TypeError(f"unsupported expiration request: {requested!r}")

    # make sure the certificate won't outlive the CA
    if not_after > issuer_not_after:
        raise ExceedsIssuerValidityError(
            f"not-after {not_after.isoformat()} can't outlive the CA ({issuer_not_after.isoformat()})",
            step="resolve not-after",
            field="not_after"
        )

    # only reachable with an expired CA
    if not not_after > now:
        raise NotInFutureError("the CA has already expired", step="resolve not-after", field="not_after")

    logger.debug("resolved not-after %s (request %r)", not_after.isoformat(), requested)
    return not_after


__all__ = ['parse_expiration_request', 'parse_timestamp', 'resolve_not_after']
