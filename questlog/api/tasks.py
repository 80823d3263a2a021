"""Protocol task endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from questlog.api.auth import get_current_user
from questlog.core.database import get_db
from questlog.models.task import Task
from questlog.models.user import User

router = APIRouter(prefix="/tasks", tags=["tasks"])


class TaskResponse(BaseModel):
    id: int
    week_number: int
    task_name: str
    task_description: str
    quest_description: str
    goal_days: int

    model_config = {"from_attributes": True}


async def get_task_for_week(db: AsyncSession, week_number: int) -> Task | None:
    result = await db.execute(
        select(Task).where(Task.week_number == week_number).order_by(Task.id).limit(1)
    )
    return result.scalar_one_or_none()


@router.get("", response_model=list[TaskResponse])
async def list_tasks(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """All protocol tasks in week order."""
    result = await db.execute(select(Task).order_by(Task.week_number, Task.id))
    return list(result.scalars().all())


@router.get("/current", response_model=TaskResponse)
async def get_current_task(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The task for the user's current protocol week."""
    task = await get_task_for_week(db, current_user.current_week)
    if task is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No task for week {current_user.current_week}",
        )
    return task


@router.get("/week/{week_number}", response_model=TaskResponse)
async def get_week_task(
    week_number: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    task = await get_task_for_week(db, week_number)
    if task is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No task for week {week_number}",
        )
    return task
