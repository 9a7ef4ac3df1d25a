"""Study insights: LLM coaching notes and plain statistics."""
from __future__ import annotations

import json
import logging
from collections import Counter

from brain import llm
from brain.errors import AIError
from server import config
from users.utils import effective_streak, load_list

logger = logging.getLogger(__name__)

RECENT_QUIZZES = 5


def mean_accuracy(quiz_results: list[dict]) -> float | None:
    scored = [q for q in quiz_results if q["total"]]
    if not scored:
        return None
    return sum(q["score"] / q["total"] for q in scored) / len(scored) * 100


def build_prompt(user: dict, tasks: list[dict], quiz_results: list[dict]) -> str:
    completed = sum(1 for t in tasks if t["status"] == "completed")
    accuracy = mean_accuracy(quiz_results) or 0.0
    recent = quiz_results[:RECENT_QUIZZES]
    weak = [s for q in recent for s in load_list(q["weak_subtopics"])]
    stable = [s for q in recent for s in load_list(q["stable_subtopics"])]

    return f"""You are a high-performance study coach for Adapta, a study planner.
Your goal is to provide 3 deeply personalized, actionable insights based on a student's data.

STUDENT DATA:
- Name: {user['name']}
- Current Mood: {user.get('current_mood') or 'okay'}
- Completed Tasks: {completed}
- Average Quiz Accuracy: {accuracy:.1f}%
- Recent Quiz Weaknesses: {json.dumps(weak)}
- Recent Quiz Strengths: {json.dumps(stable)}

DIRECTIONS:
1. Analyze patterns in their performance and mood.
2. Insights should feel human and encouraging, yet data-driven.
3. Each insight has:
   - title: short name (max 4 words)
   - icon: single relevant emoji
   - reasoning: a "because" statement explaining the observation (max 2 sentences)
   - change: an actionable study tip or adjustment (max 1 sentence)

Return ONLY a JSON array: [{{"id": "1", "title": "...", "icon": "...", "reasoning": "...", "change": "..."}}]
No AI mentions, no preamble."""


def generate_insights(user: dict, tasks: list[dict], quiz_results: list[dict]) -> list[dict]:
    """Three coaching insights; an empty list whenever the model can't provide them."""
    if not config.ANTHROPIC_API_KEY:
        logger.warning("No API key configured, returning no insights")
        return []
    try:
        insights = llm.complete_json(
            build_prompt(user, tasks, quiz_results),
            system="You are a professional study analyzer. Return pure JSON.",
            model=config.FAST_MODEL,
            max_tokens=1500,
            source="Insights",
        )
    except AIError as exc:
        logger.error("Insights generation failed: %s", exc)
        return []

    if isinstance(insights, dict):
        insights = insights.get("insights")
    if not isinstance(insights, list):
        return []
    return [i for i in insights if isinstance(i, dict)]


def summarize(user: dict, tasks: list[dict], quiz_results: list[dict], moods: list[str], today: str) -> dict:
    completed = sum(1 for t in tasks if t["status"] == "completed")
    pending = [t for t in tasks if t["status"] != "completed"]
    missed = sum(1 for t in pending if t["day_date"] and t["day_date"] < today)
    accuracy = mean_accuracy(quiz_results)
    return {
        "tasks_total": len(tasks),
        "tasks_completed": completed,
        "tasks_pending": len(pending),
        "tasks_missed": missed,
        "completion_rate": round(completed / len(tasks) * 100, 1) if tasks else 0.0,
        "quiz_count": len(quiz_results),
        "quiz_accuracy": round(accuracy, 1) if accuracy is not None else None,
        "current_streak": effective_streak(user, today),
        "streak_history": load_list(user.get("streak_history")),
        "mood_counts": dict(Counter(moods)),
    }
