"""Learning routes: tutor chat, lesson content, quizzes, video resources."""

import logging
from fastapi import APIRouter, Depends, HTTPException
from typing import List
from server import config
from server.database import get_db
from auth.utils import get_current_user
from brain import llm
from brain.errors import AIResponseError
from learning import quiz, resources
from learning.schemas import (
    ChatRequest, LearningContentRequest, QuizGenerateRequest,
    QuizEvaluateRequest, QuizResultResponse, ResourcesRequest,
)
from users.utils import load_list, local_today

logger = logging.getLogger(__name__)

router = APIRouter()

TUTOR_SYSTEM = """You are a supportive, calm study tutor for Adapta.
A student is feeling stuck on a topic and needs help understanding concepts.

RULES:
- Explain concepts simply and clearly
- Provide helpful analogies when appropriate
- Be encouraging and supportive
- Avoid complex jargon unless necessary
- Keep responses focused and concise
- No emojis or overly casual language
- No mentions of AI or automation"""


@router.post("/chat")
@router.post("/explain")
def chat(body: ChatRequest, current_user: dict = Depends(get_current_user)):
    message = (body.message or "").strip()
    if not message:
        raise HTTPException(status_code=400, detail="Message is required")

    history = [turn.model_dump() for turn in body.history]
    text = llm.complete(
        f"Student question: {message}",
        system=TUTOR_SYSTEM,
        history=history,
        model=config.FAST_MODEL,
        max_tokens=2000,
        source="Chat Request",
    )
    return {"response": text}


@router.post("/learning/content")
def learning_content(body: LearningContentRequest, current_user: dict = Depends(get_current_user)):
    proximity = quiz.exam_proximity(body.exam_date, local_today(current_user))
    prompt = f"""You are a personalized learning assistant for Adapta. Help students study for exams.
STRICT RULES:
- Calm, tutor-like tone. No emojis.
- Proximity: {proximity}. Level: {body.level or 'General'}. Learning Style: {body.learning_style or 'Mixed'}.
- Session type: {body.session_type or 'Core Learning'}.
- TASK: Break "{body.topic}" in "{body.subject}" into logical subtopics and provide content for each.
- Return ONLY a JSON object: {{"subparts": [{{"title": "string", "content": "string"}}]}}"""

    content = llm.complete_json(prompt, source="Learning Content Generation")
    if isinstance(content, list):
        content = {"subparts": content}
    if not isinstance(content, dict) or not isinstance(content.get("subparts"), list):
        raise AIResponseError("Learning content is missing 'subparts'")
    return content


@router.post("/quiz/generate")
def generate_quiz(body: QuizGenerateRequest, current_user: dict = Depends(get_current_user)):
    questions = llm.complete_json(
        quiz.generation_prompt(body.subject, body.topic), source="Quiz Generation"
    )
    if isinstance(questions, dict):
        questions = questions.get("quiz") or questions.get("questions")
    if not isinstance(questions, list) or not questions:
        raise AIResponseError("Quiz generation returned no questions")
    return {"quiz": questions}


@router.post("/quiz/evaluate")
def evaluate_quiz(body: QuizEvaluateRequest, current_user: dict = Depends(get_current_user)):
    if not body.questions:
        raise HTTPException(status_code=400, detail="questions are required")
    return quiz.evaluate_quiz(current_user, body, local_today(current_user))


@router.get("/quiz/results", response_model=List[QuizResultResponse])
def get_quiz_results(current_user: dict = Depends(get_current_user)):
    db = get_db()
    rows = db.execute(
        "SELECT * FROM quiz_results WHERE user_id = ? ORDER BY created_at DESC, id DESC",
        (current_user["id"],)
    ).fetchall()
    db.close()

    results = []
    for r in rows:
        d = dict(r)
        d["weak_subtopics"] = load_list(d.get("weak_subtopics"))
        d["stable_subtopics"] = load_list(d.get("stable_subtopics"))
        results.append(QuizResultResponse(**d))
    return results


@router.post("/resources")
def get_resources(body: ResourcesRequest, current_user: dict = Depends(get_current_user)):
    """Tutorial videos for a session; never fails, worst case a search link."""
    topic = (body.subtopic or body.topic).strip()
    if not topic:
        return {"resources": []}
    return {"resources": resources.find_videos(topic, body.subject.strip())}
