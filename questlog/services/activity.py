"""Activity service - engagement events and the therapist's engagement views."""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from questlog.models.activity import ActivityAction, ActivityLog

logger = logging.getLogger(__name__)

DEFAULT_LOG_LIMIT = 50
DEFAULT_ENGAGEMENT_DAYS = 30
DEFAULT_TIMELINE_DAYS = 7


@dataclass(frozen=True)
class DeviceInfo:
    device_type: str = "desktop"
    browser: str = "Unknown"
    os: str = "Unknown"


def parse_user_agent(user_agent: str | None) -> DeviceInfo:
    """Rough device, browser and OS from a User-Agent header."""
    if not user_agent:
        return DeviceInfo()
    ua = user_agent.lower()

    if "tablet" in ua or "ipad" in ua:
        device_type = "tablet"
    elif "mobile" in ua or "iphone" in ua:
        device_type = "mobile"
    else:
        device_type = "desktop"

    # Edge and Chrome both claim Safari; Edge also claims Chrome
    if "edg" in ua:
        browser = "Edge"
    elif "chrome" in ua or "crios" in ua:
        browser = "Chrome"
    elif "firefox" in ua or "fxios" in ua:
        browser = "Firefox"
    elif "safari" in ua:
        browser = "Safari"
    else:
        browser = "Unknown"

    # iOS says "like Mac OS X", Android says "Linux"
    if "iphone" in ua or "ipad" in ua:
        os_name = "iOS"
    elif "android" in ua:
        os_name = "Android"
    elif "mac" in ua:
        os_name = "macOS"
    elif "windows" in ua:
        os_name = "Windows"
    elif "linux" in ua:
        os_name = "Linux"
    else:
        os_name = "Unknown"

    return DeviceInfo(device_type=device_type, browser=browser, os=os_name)


def client_ip(headers: Mapping[str, str], peer: str | None = None) -> str | None:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or peer
    return headers.get("x-real-ip") or peer


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive values; they were written in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def activity_to_dict(log: ActivityLog) -> dict[str, Any]:
    return {
        "id": log.id,
        "actionType": log.action_type,
        "pagePath": log.page_path,
        "deviceType": log.device_type,
        "browser": log.browser,
        "os": log.os,
        "ipAddress": log.ip_address,
        "sessionId": log.session_id,
        "sessionDuration": log.session_duration,
        "metadata": log.details,
        "occurredAt": _as_utc(log.occurred_at).isoformat(),
    }


class ActivityService:
    """Records what a client does in the app and summarizes it for the therapist."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log_event(
        self,
        user_id: int,
        action: ActivityAction,
        *,
        page_path: str | None = None,
        session_id: str | None = None,
        session_duration: int | None = None,
        details: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        now: datetime | None = None,
    ) -> ActivityLog:
        device = parse_user_agent(user_agent)
        log = ActivityLog(
            user_id=user_id,
            action_type=ActivityAction(action).value,
            page_path=page_path,
            ip_address=ip_address,
            user_agent=user_agent,
            device_type=device.device_type,
            browser=device.browser,
            os=device.os,
            session_id=session_id,
            session_duration=session_duration,
            details=details,
            occurred_at=_as_utc(now or datetime.now(timezone.utc)),
        )
        self.db.add(log)
        await self.db.flush()
        logger.debug(f"Activity {log.action_type} for user {user_id} from {device.device_type}")
        return log

    async def get_logs(self, user_id: int, limit: int = DEFAULT_LOG_LIMIT) -> list[ActivityLog]:
        """Most recent events first."""
        result = await self.db.execute(
            select(ActivityLog)
            .where(ActivityLog.user_id == user_id)
            .order_by(ActivityLog.occurred_at.desc(), ActivityLog.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def _logs_since(self, user_id: int, since: datetime) -> list[ActivityLog]:
        result = await self.db.execute(
            select(ActivityLog)
            .where(ActivityLog.user_id == user_id, ActivityLog.occurred_at >= _as_utc(since))
            .order_by(ActivityLog.occurred_at, ActivityLog.id)
        )
        return list(result.scalars().all())

    async def get_engagement(
        self,
        user_id: int,
        now: datetime,
        days: int = DEFAULT_ENGAGEMENT_DAYS,
    ) -> dict[str, Any]:
        """
        Engagement over the last `days` days.

        Active days are calendar days in `now`'s zone. Average session
        length only counts session_end events that carry a duration.
        """
        logs = await self._logs_since(user_id, now - timedelta(days=days))
        zone = now.tzinfo or timezone.utc

        actions = Counter(log.action_type for log in logs)
        devices = Counter(log.device_type for log in logs)
        durations = [
            log.session_duration
            for log in logs
            if log.action_type == ActivityAction.SESSION_END.value and log.session_duration is not None
        ]
        active_days = {_as_utc(log.occurred_at).astimezone(zone).date() for log in logs}

        return {
            "periodDays": days,
            "totalEvents": len(logs),
            "logins": actions[ActivityAction.LOGIN.value],
            "pageViews": actions[ActivityAction.PAGE_VIEW.value],
            "tasksStarted": actions[ActivityAction.TASK_STARTED.value],
            "tasksCompleted": actions[ActivityAction.TASK_COMPLETED.value],
            "sessions": len({log.session_id for log in logs if log.session_id}),
            "activeDays": len(active_days),
            "avgSessionSeconds": round(sum(durations) / len(durations)) if durations else None,
            "lastActiveAt": _as_utc(logs[-1].occurred_at).isoformat() if logs else None,
            "actions": dict(sorted(actions.items())),
            "devices": dict(sorted(devices.items())),
        }

    async def get_timeline(
        self,
        user_id: int,
        now: datetime,
        days: int = DEFAULT_TIMELINE_DAYS,
    ) -> list[dict[str, Any]]:
        """One row per calendar day (oldest first, today last), zero-filled."""
        zone = now.tzinfo or timezone.utc
        today = now.date()
        first_day = today - timedelta(days=days - 1)
        logs = await self._logs_since(user_id, datetime.combine(first_day, time.min, tzinfo=zone))

        buckets: dict[date, Counter] = {first_day + timedelta(days=i): Counter() for i in range(days)}
        for log in logs:
            day = _as_utc(log.occurred_at).astimezone(zone).date()
            if day in buckets:
                buckets[day][log.action_type] += 1

        return [
            {
                "date": day.isoformat(),
                "events": sum(counts.values()),
                "logins": counts[ActivityAction.LOGIN.value],
                "pageViews": counts[ActivityAction.PAGE_VIEW.value],
                "tasksCompleted": counts[ActivityAction.TASK_COMPLETED.value],
            }
            for day, counts in buckets.items()
        ]
