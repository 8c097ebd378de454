from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends, HTTPException, Request
from services.api.app.db.deps import get_db
from services.api.app.services.identity import CurrentUser, get_identity_provider
from services.api.app.services.order_placement import INVALID_BODY
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def current_user(request: Request, db: Session = Depends(get_db)) -> CurrentUser | None:
    try:
        provider = get_identity_provider()
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e

    try:
        return provider.get_current_user(request, db)
    except SQLAlchemyError as e:
        logger.exception("Identity lookup failed")
        raise HTTPException(status_code=500, detail="Failed to resolve user") from e


def require_user(user: CurrentUser | None = Depends(current_user)) -> CurrentUser:
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


async def read_json_body(request: Request) -> Any:
    """Decoded JSON body, or INVALID_BODY when it does not parse."""
    try:
        return await request.json()
    except ValueError:
        return INVALID_BODY
