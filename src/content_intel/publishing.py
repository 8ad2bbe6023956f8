"""Publishing Guard Module

Status transitions for content records. A record may only move to
``published`` when it passes the quality gate; unpublishing is always allowed.
"""

import logging
from typing import Any

from .models import BaseRecord, Status
from .quality import evaluate_record

logger = logging.getLogger(__name__)

QUALITY_GATE_PREFIX = "QUALITY_GATE_FAILED: "


class PublishBlockedError(ValueError):
    """Raised when a record fails the quality gate on publish."""

    def __init__(self, reasons):
        self.reasons = list(reasons)
        super().__init__(QUALITY_GATE_PREFIX + "; ".join(self.reasons))


def transition_status(record: BaseRecord, target_status: Any) -> BaseRecord:
    """Return a copy of ``record`` with ``target_status`` applied.

    Raises:
        PublishBlockedError: If publishing and the record fails the quality gate
        ValueError: If ``target_status`` is not a known status
    """
    status = Status(target_status)

    if status == Status.PUBLISHED:
        result = evaluate_record(record)
        if not result.ok:
            logger.info(
                "Publish blocked for %s/%s (score=%d): %s",
                record.kind.value,
                record.slug,
                result.score,
                "; ".join(result.reasons),
            )
            raise PublishBlockedError(result.reasons)

    logger.info("Status change %s/%s: %s -> %s", record.kind.value, record.slug, record.status.value, status.value)
    return record.model_copy(update={"status": status})
