from __future__ import annotations

import logging
from collections.abc import Mapping

from fastapi import HTTPException

from app.services.sync_queue import SyncQueueError


logger = logging.getLogger(__name__)


def sync_unavailable(exc: SyncQueueError) -> HTTPException:
    # The change was not queued, so nothing was applied; the client may retry.
    logger.warning("friend change was not queued", exc_info=exc)
    return HTTPException(status_code=503, detail="Friend service temporarily unavailable")


def value_error(
    exc: ValueError,
    *,
    code_statuses: Mapping[str, int] | None = None,
    detail_overrides: Mapping[str, str] | None = None,
    default_status: int = 400,
    default_detail: str | None = None,
) -> HTTPException:
    raw_detail = str(exc)

    if code_statuses and raw_detail in code_statuses:
        detail = (
            detail_overrides[raw_detail]
            if detail_overrides and raw_detail in detail_overrides
            else raw_detail
        )
        return HTTPException(status_code=code_statuses[raw_detail], detail=detail)

    return HTTPException(
        status_code=default_status,
        detail=default_detail if default_detail is not None else raw_detail,
    )
