"""Coach service - encouragement, daily greetings, tips and summaries via Claude Haiku.

Every call has a deterministic fallback, so a missing API key or an API
outage degrades the text but never fails the request.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Sequence

from anthropic import AsyncAnthropic

from questlog.core.config import settings

logger = logging.getLogger(__name__)

INSIGHTS_MIN_ENTRIES = 3
SUMMARY_MIN_ENTRIES = 2
TIP_MIN_ENTRIES = 2
MEDICATION_CONCERN_RATE = 50

TIP_CATEGORIES = {"anxiety-management", "motivation", "progress", "technique", "celebration"}
GETTING_STARTED_TIP = {
    "tip": "Start with small steps. Even a brief moment outside counts as progress.",
    "category": "getting-started",
}

COMPLETION_SYSTEM_PROMPT = """You are a supportive, warm coach helping {name} with behavioral activation for anxiety.
Keep responses brief (2-3 sentences max), genuine, and encouraging without being over-the-top.
Focus on specific observations from the data. Be mature and calm, not childish or overly enthusiastic.
Never use excessive exclamation marks or emojis. Sound like a supportive friend, not a cheerleader."""

INSIGHTS_SYSTEM_PROMPT = """You are a supportive coach analyzing {name}'s behavioral activation progress.
Provide a brief insight (2-3 sentences) about patterns you notice.
Be specific, warm, and constructive. Focus on progress and gentle suggestions.
Don't be preachy or use clinical language. Sound like a supportive friend."""

GREETING_SYSTEM_PROMPT = """You are a supportive, warm companion helping {name} with daily behavioral activation.
Generate a brief, personalized greeting (1-2 sentences) based on the context.
Be genuine and specific. If the streak is at risk, gently encourage without pressure.
If today's task is already done, acknowledge it warmly.
Match the time of day in your greeting. Never use excessive punctuation or emojis.
Sound like a calm, supportive friend, not a cheerleader or therapist."""

TIP_SYSTEM_PROMPT = """You are a supportive coach providing a daily tip for {name}'s behavioral activation journey.
Generate ONE brief, actionable tip (1-2 sentences) based on the patterns given.
Be specific and practical. If anxiety is high, suggest grounding techniques.
If medication use is frequent, gently encourage trying without when ready.
If things are going well, reinforce what's working. Never be preachy.
Respond with only a JSON object: {{"tip": string, "category": string}}, where category is one of
anxiety-management, motivation, progress, technique, celebration."""

SUMMARY_SYSTEM_PROMPT = """You are an assistant helping a therapist monitor a client's behavioral activation progress.
Provide a concise clinical summary (3-4 sentences) highlighting key patterns, concerns, and positives.
Be objective and professional. Flag any concerning patterns (high anxiety, increased medication use, breaks in streaks).
Also note positive trends (consistent engagement, anxiety reduction, self-reported wins).
Respond with only a JSON object: {"summary": string, "concerns": [string], "positives": [string]}"""


@dataclass
class CompletionContext:
    """What the coach knows about a just-finished task."""
    task_name: str
    anxiety_before: int
    anxiety_during: int
    used_medication: bool
    current_streak: int
    win_note: str | None = None

    @property
    def anxiety_reduction(self) -> int:
        return self.anxiety_before - self.anxiety_during


def time_of_day(hour: int) -> str:
    if hour < 12:
        return "morning"
    if hour < 17:
        return "afternoon"
    return "evening"


def _averages(entries: Sequence[Any]) -> tuple[float, float]:
    before = sum(e.anxiety_before for e in entries) / len(entries)
    during = sum(e.anxiety_during for e in entries) / len(entries)
    return before, during


class CoachService:
    """Generates coaching text with Claude Haiku, falling back to templates."""

    def __init__(self):
        self._client: AsyncAnthropic | None = None

    @property
    def client(self) -> AsyncAnthropic:
        if self._client is None:
            if not settings.anthropic_api_key:
                raise ValueError("ANTHROPIC_API_KEY is not configured")
            self._client = AsyncAnthropic(api_key=settings.anthropic_api_key)
        return self._client

    async def _complete(self, system_prompt: str, user_prompt: str, max_tokens: int = 300) -> str:
        response = await self.client.messages.create(
            model=settings.haiku_model,
            max_tokens=max_tokens,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )
        return response.content[0].text.strip() if response.content else ""

    # =========================================================================
    # COMPLETION MESSAGE
    # =========================================================================

    @staticmethod
    def fallback_completion_message(context: CompletionContext) -> str:
        reduction = context.anxiety_reduction
        if reduction > 0:
            message = f"Nice work sticking with {context.task_name} and bringing anxiety down {reduction} points."
        else:
            message = f"You showed up for {context.task_name} even while uncomfortable. That consistency matters."
        if context.current_streak > 1:
            message += f" Streak: {context.current_streak} days. Keep that rhythm going."
        return message

    async def completion_message(self, context: CompletionContext, name: str | None = None) -> str:
        name = (name or "").strip() or settings.client_name
        lines = [
            f"{name} just completed their daily behavioral activation task.",
            f"- Task: {context.task_name}",
            f"- Anxiety before: {context.anxiety_before}/10",
            f"- Anxiety during: {context.anxiety_during}/10",
            f"- Anxiety reduction: {context.anxiety_reduction} points",
            f"- Used medication: {'Yes' if context.used_medication else 'No'}",
            f"- Current streak: {context.current_streak} days",
        ]
        if context.win_note:
            lines.append(f"- {name}'s win note: \"{context.win_note}\"")

        try:
            message = await self._complete(
                COMPLETION_SYSTEM_PROMPT.format(name=name),
                f"Generate a brief, personalized encouragement message for {name} "
                f"based on this completion:\n" + "\n".join(lines),
            )
            return message or "Great work today. Every step forward counts."
        except Exception as e:
            logger.warning(f"Completion message generation failed, using fallback: {e}")
            return self.fallback_completion_message(context)

    # =========================================================================
    # WEEKLY INSIGHTS
    # =========================================================================

    async def weekly_insights(self, entries: Sequence[Any], name: str | None = None) -> dict[str, Any]:
        """Insight over recent entries (newest first). Needs a few entries to say anything."""
        if len(entries) < INSIGHTS_MIN_ENTRIES:
            return {
                "insight": "Keep completing tasks to unlock personalized insights about your progress.",
                "hasEnoughData": False,
            }

        name = (name or "").strip() or settings.client_name
        avg_before, avg_during = _averages(entries)
        avg_reduction = avg_before - avg_during
        medication_count = sum(1 for e in entries if e.used_medication)
        recent_wins = [e.win_note for e in entries[:5] if e.win_note]

        stats = {
            "avgAnxietyBefore": round(avg_before, 1),
            "avgAnxietyDuring": round(avg_during, 1),
            "avgReduction": round(avg_reduction, 1),
            "entriesCount": len(entries),
        }
        context = "\n".join([
            f"{name}'s recent progress (last {len(entries)} entries):",
            f"- Average anxiety before tasks: {avg_before:.1f}/10",
            f"- Average anxiety during tasks: {avg_during:.1f}/10",
            f"- Average anxiety reduction: {avg_reduction:.1f} points",
            f"- Medication usage: {medication_count} out of {len(entries)} tasks",
            f"- Recent wins {name} noted: {'; '.join(recent_wins) if recent_wins else 'None noted'}",
        ])

        try:
            insight = await self._complete(
                INSIGHTS_SYSTEM_PROMPT.format(name=name),
                f"Generate a brief insight for {name} based on recent data:\n{context}",
            )
            insight = insight or "You're making steady progress. Keep it up."
        except Exception as e:
            logger.warning(f"Weekly insight generation failed, using fallback: {e}")
            direction = "reduction" if avg_reduction >= 0 else "change"
            insight = (
                f"Here's the snapshot: average anxiety before tasks is {avg_before:.1f}/10 "
                f"with an average {direction} of {avg_reduction:.1f} points during tasks. "
                "Keep an eye on how you feel over the next few days and adjust the pace if needed."
            )

        return {"insight": insight, "hasEnoughData": True, "stats": stats}

    # =========================================================================
    # DAILY GREETING AND TIP
    # =========================================================================

    async def greeting(
        self,
        progression: Any | None,
        completed_today: bool,
        week_count: int,
        hour: int,
        name: str | None = None,
    ) -> dict[str, Any]:
        """Time-of-day greeting that flags a streak about to lapse."""
        name = (name or "").strip() or settings.client_name
        period = time_of_day(hour)
        current_streak = progression.current_streak if progression else 0
        streak_at_risk = current_streak > 0 and not completed_today

        context = "\n".join([
            f"Time: {period}",
            f"User: {name}",
            f"Current streak: {current_streak} days",
            f"Longest streak: {progression.longest_streak if progression else 0} days",
            f"Current level: {progression.current_level if progression else 1}",
            f"Total XP: {progression.total_xp if progression else 0}",
            f"Tasks completed this week: {week_count}",
            f"Already completed today: {'Yes' if completed_today else 'No'}",
            f"Streak at risk: {'Yes' if streak_at_risk else 'No'}",
        ])

        try:
            text = await self._complete(
                GREETING_SYSTEM_PROMPT.format(name=name),
                f"Generate a personalized greeting for {name}:\n{context}",
                max_tokens=150,
            )
            text = text or f"Good {period}, {name}."
        except Exception as e:
            logger.warning(f"Greeting generation failed, using fallback: {e}")
            text = f"Good {period}, {name}."
            if streak_at_risk:
                text += " You're on a streak. One small task today keeps it going."

        return {
            "greeting": text,
            "timeOfDay": period,
            "streakAtRisk": streak_at_risk,
            "completedToday": completed_today,
        }

    async def tip(self, entries: Sequence[Any], current_streak: int = 0, name: str | None = None) -> dict[str, str]:
        """One actionable tip from recent entries (newest first)."""
        if len(entries) < TIP_MIN_ENTRIES:
            return dict(GETTING_STARTED_TIP)

        name = (name or "").strip() or settings.client_name
        avg_before, avg_during = _averages(entries)
        avg_reduction = avg_before - avg_during
        medication_rate = sum(1 for e in entries if e.used_medication) / len(entries)
        # Newest minus oldest; positive means anxiety is climbing
        trend = entries[0].anxiety_during - entries[-1].anxiety_during if len(entries) >= 3 else 0
        if trend > 0:
            trend_label = "Anxiety increasing"
        elif trend < 0:
            trend_label = "Anxiety decreasing"
        else:
            trend_label = "Stable"

        context = "\n".join([
            f"{name}'s patterns:",
            f"- Average anxiety before: {avg_before:.1f}/10",
            f"- Average anxiety during: {avg_during:.1f}/10",
            f"- Medication usage rate: {medication_rate * 100:.0f}%",
            f"- Recent trend: {trend_label}",
            f"- Current streak: {current_streak} days",
            f"- Tasks considered: {len(entries)}",
        ])

        try:
            raw = await self._complete(
                TIP_SYSTEM_PROMPT.format(name=name),
                f"Generate a personalized tip for {name}:\n{context}",
                max_tokens=200,
            )
            parsed = json.loads(raw)
            category = parsed.get("category")
            return {
                "tip": parsed.get("tip") or "Take it one step at a time. You're doing great.",
                "category": category if category in TIP_CATEGORIES else "motivation",
            }
        except Exception as e:
            logger.warning(f"Tip generation failed, using fallback: {e}")
            return {
                "tip": (
                    "Remember: the goal isn't perfection, it's progress. "
                    f"A {avg_reduction:.1f} point change in anxiety is still movement."
                ),
                "category": "motivation",
            }

    # =========================================================================
    # CLIENT SUMMARY (therapist view)
    # =========================================================================

    async def client_summary(self, user: Any, progression: Any, entries: Sequence[Any]) -> dict[str, Any]:
        name = (user.name or "").strip() or settings.client_name

        if len(entries) < SUMMARY_MIN_ENTRIES:
            return {
                "summary": f"Not enough data yet for analysis. {name} needs to complete more tasks.",
                "concerns": [],
                "positives": [],
            }

        avg_before, avg_during = _averages(entries)
        medication_rate = round(sum(1 for e in entries if e.used_medication) / len(entries) * 100)
        recent_wins = [e.win_note for e in entries if e.win_note]

        context = "\n".join([
            f"Client: {name}",
            f"Recent activity ({len(entries)} entries over last 2 weeks):",
            f"- Current streak: {progression.current_streak} days",
            f"- Longest streak: {progression.longest_streak} days",
            f"- Current level: {progression.current_level}",
            f"- Average anxiety before: {avg_before:.1f}/10",
            f"- Average anxiety during: {avg_during:.1f}/10",
            f"- Medication usage rate: {medication_rate}%",
            f"- Recent self-reported wins: {'; '.join(recent_wins) if recent_wins else 'None'}",
        ])

        try:
            raw = await self._complete(
                SUMMARY_SYSTEM_PROMPT,
                f"Generate a clinical summary for the therapist:\n{context}",
                max_tokens=600,
            )
            parsed = json.loads(raw)
            return {
                "summary": parsed.get("summary") or "Unable to generate summary.",
                "concerns": parsed.get("concerns") or [],
                "positives": parsed.get("positives") or [],
            }
        except Exception as e:
            logger.warning(f"Client summary generation failed, using fallback: {e}")
            concerns = []
            if medication_rate > MEDICATION_CONCERN_RATE:
                concerns.append("Frequent medication use. Consider exploring strategies to reduce reliance.")
            return {
                "summary": (
                    f"{name} has logged {len(entries)} entries in the last two weeks. "
                    f"Average anxiety went from {avg_before:.1f}/10 before tasks to {avg_during:.1f}/10 during tasks. "
                    f"{medication_rate}% of tasks included medication. "
                    f"Keep monitoring streak durability ({progression.current_streak} current, "
                    f"{progression.longest_streak} max)."
                ),
                "concerns": concerns,
                "positives": recent_wins[:3],
            }


# Singleton instance
coach_service = CoachService()
