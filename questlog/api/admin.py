"""Therapist endpoints for reviewing client progress."""

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from questlog.api.auth import require_admin
from questlog.core.database import get_db
from questlog.models.user import User
from questlog.services import coach_service
from questlog.services.auth import get_user_by_id
from questlog.services.progression import ProgressionService
from questlog.services.stats import StatsService, render_csv, user_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

SUMMARY_ENTRY_LIMIT = 14


async def _get_client_or_404(db: AsyncSession, user_id: int) -> User:
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user


@router.get("/clients")
async def list_clients(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """All client accounts."""
    clients = await StatsService(db).list_clients()
    return [user_to_dict(u) for u in clients]


@router.get("/clients/{user_id}/activity")
async def get_client_activity(
    user_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Recent entries, last login and completions over the past week."""
    user = await _get_client_or_404(db, user_id)
    today = datetime.now(timezone.utc).date()
    return await StatsService(db).get_client_activity(user, today)


@router.get("/clients/{user_id}/export")
async def export_client(
    user_id: int,
    export_format: str = Query("json", alias="format", pattern="^(json|csv)$"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Export every entry for a client as JSON or CSV."""
    user = await _get_client_or_404(db, user_id)
    stats = StatsService(db)

    if export_format == "csv":
        rows = await stats.get_export_rows(user.id)
        filename = f"{(user.name or 'client').lower()}-entries.csv"
        logger.info(f"Admin {admin.id} exported {len(rows)} entries for user {user.id} as CSV")
        return Response(
            content=render_csv(rows),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    export = await stats.export_client(user)
    await db.commit()
    return export


@router.get("/clients/{user_id}/summary")
async def get_client_summary(
    user_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Clinical summary of the last two weeks of entries."""
    user = await _get_client_or_404(db, user_id)
    progression = await ProgressionService(db).get_or_create(user.id)
    entries = await StatsService(db).get_entries(user.id, limit=SUMMARY_ENTRY_LIMIT)
    await db.commit()
    return await coach_service.client_summary(user, progression, entries)
