from __future__ import annotations

import logging
from typing import Sequence

from .mapping import BROKER_COLUMN_SIGNALS, BROKER_NAME_SIGNALS, BrokerId

logger = logging.getLogger(__name__)


def _any_header_contains(lowered: Sequence[str], needles: Sequence[str]) -> bool:
    return any(n in h for h in lowered for n in needles)


def detect_broker(headers: Sequence[str]) -> BrokerId:
    """Pick the broker profile that produced a statement from its header row.

    Brokers are tried in declaration order of BrokerId; within a broker the
    name signals are checked before the distinctive column names. Every test
    is per header, so the result does not depend on column order.
    """
    lowered = [str(h).lower() for h in headers]
    for broker in BrokerId:
        if broker is BrokerId.GENERIC:
            continue
        if _any_header_contains(lowered, BROKER_NAME_SIGNALS.get(broker, ())):
            logger.debug("Detected %s by broker name in headers", broker.value)
            return broker
        if _any_header_contains(lowered, BROKER_COLUMN_SIGNALS.get(broker, ())):
            logger.debug("Detected %s by distinctive columns", broker.value)
            return broker
    logger.debug("Defaulting to generic format for headers %s", list(headers))
    return BrokerId.GENERIC
