"""Quiz generation/evaluation prompts and what happens after a quiz is graded."""
from __future__ import annotations

import json
import logging

from brain import llm, replanner
from brain.errors import AIResponseError
from server.database import get_db
from users.utils import advance_streak, days_between, load_list, shift_day

logger = logging.getLogger(__name__)


def exam_proximity(exam_date: str | None, today: str) -> str:
    if not exam_date:
        return "Normal"
    try:
        days = days_between(today, exam_date)
    except ValueError:
        return "Normal"
    if days == 1:
        return "Tomorrow"
    if days <= 7:
        return "Approaching"
    return "Normal"


def generation_prompt(subject: str, topic: str) -> str:
    return f"""You are a learning assistant for Adapta.
Generate a conceptual and application-based quiz based ONLY on the topic "{topic}" in "{subject}".
- Calm, tutor-like tone. No emojis.
- Match difficulty to exam standards.
- Include 5 MCQ and 1 short-answer diagnostic question.
- Every question MUST have an "explanation" field (minimum 2 sentences) explaining the concept and why the correctAnswer is right.
- Return ONLY a JSON array of objects with this structure:
  [
    {{
      "id": "1",
      "type": "mcq",
      "question": "Question text here",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correctAnswer": "Option B",
      "explanation": "Why this answer is correct."
    }}
  ]
- For the short-answer question use "type": "short" and an empty "options" list."""


def evaluation_prompt(subject: str, topic: str, questions, responses, proximity: str, tomorrow: str) -> str:
    return f"""You are a learning evaluation manager for Adapta.
EVALUATE this quiz attempt for "{topic}" in "{subject}".

INPUT:
Questions: {json.dumps(questions)}
Responses: {json.dumps(responses)}
Proximity: {proximity}

RULES:
1. The "score" field must be the EXACT number of correct answers in the Responses. Do not inflate it.
2. Weak subtopics: where answers were incorrect or showed gaps.
3. Stable subtopics: where the student was consistently correct.
4. Be honest about the score but keep the language supportive; treat mistakes as learning signals.
5. Suggest short, specific revision tasks ONLY for weak subtopics, dated {tomorrow}, each with
   subject, topic, subtopic, duration, date, sessionType, aiExplanation.
6. Return ONLY a JSON object with this structure:
{{
  "score": 0,
  "total": 0,
  "insight": "string",
  "weakSubtopics": ["string"],
  "stableSubtopics": ["string"],
  "suggestedRevisionTasks": []
}}

TONE: supportive, honest, exam-focused. No emojis. No AI mentions."""


def subtopic_names(raw) -> list[str]:
    """Plain subtopic names; object items keep their name-like field."""
    names = []
    for item in load_list(raw):
        if isinstance(item, dict):
            item = item.get("name") or item.get("subtopic") or item.get("topic") or item.get("title")
        if isinstance(item, str) and item.strip():
            names.append(item.strip())
    return names


def validate_evaluation(evaluation) -> dict:
    if not isinstance(evaluation, dict):
        raise AIResponseError("Quiz evaluation is not a JSON object")
    try:
        evaluation["score"] = int(evaluation["score"])
        evaluation["total"] = int(evaluation["total"])
    except (KeyError, TypeError, ValueError) as exc:
        raise AIResponseError(f"Quiz evaluation missing score/total: {exc}") from exc
    evaluation["weakSubtopics"] = subtopic_names(evaluation.get("weakSubtopics"))
    evaluation["stableSubtopics"] = subtopic_names(evaluation.get("stableSubtopics"))
    evaluation["suggestedRevisionTasks"] = load_list(evaluation.get("suggestedRevisionTasks"))
    return evaluation


def evaluate_quiz(user: dict, body, today: str) -> dict:
    """Grade a quiz attempt and apply its consequences.

    A passing score (more than half) keeps the daily streak; a failing one
    marks the topic weak, which forces a replan. The result is stored either
    way, before the replan so the replan sees it.
    """
    prompt = evaluation_prompt(
        body.subject, body.topic, body.questions, body.responses,
        exam_proximity(body.exam_date, today), shift_day(today, 1),
    )
    evaluation = validate_evaluation(llm.complete_json(prompt, source="Quiz Evaluation"))
    score, total = evaluation["score"], evaluation["total"]
    passed = score > total / 2

    db = get_db()
    try:
        if passed:
            row = db.execute("SELECT * FROM users WHERE id = ?", (user["id"],)).fetchone()
            advanced = advance_streak(dict(row), today)
            if advanced is None:
                logger.info("Streak already kept today for user %s", user["id"])
            else:
                streak, history = advanced
                db.execute(
                    "UPDATE users SET current_streak = ?, last_streak_date = ?, streak_history = ? WHERE id = ?",
                    (streak, today, json.dumps(history), user["id"])
                )
                evaluation["streakUpdate"] = {"newStreak": streak, "message": "Streak maintained!"}

        task_id = None
        if body.task_id is not None:
            owned = db.execute(
                "SELECT id FROM tasks WHERE id = ? AND user_id = ?", (body.task_id, user["id"])
            ).fetchone()
            if owned:
                task_id = body.task_id
                db.execute(
                    "UPDATE tasks SET status = 'completed', quiz_status = 'completed' WHERE id = ?",
                    (task_id,)
                )

        db.execute(
            """INSERT INTO quiz_results (user_id, task_id, subject, topic, score, total,
                   weak_subtopics, stable_subtopics)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (user["id"], task_id, body.subject, body.topic, score, total,
             json.dumps(evaluation["weakSubtopics"]), json.dumps(evaluation["stableSubtopics"]))
        )
        db.commit()
    finally:
        db.close()

    logger.info("Quiz evaluated for user %s: %s/%s on %s", user["id"], score, total, body.topic)
    if not passed:
        evaluation["replan"] = replanner.mark_topic_weak(user, body.topic)
    return evaluation
