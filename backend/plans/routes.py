"""Onboarding (plan) CRUD, syllabus upload and study-plan routes."""

import json
import logging
import os
import shutil
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, UploadFile, File
from typing import List, Optional
from server.database import get_db
from server import config
from auth.utils import get_current_user
from brain import planner, replanner
from plans import syllabus
from plans.schemas import (
    OnboardingRequest, PlanResponse, PlanFileResponse,
    GeneratedPlanResponse, ActivePlansResponse, ReplanRequest,
)
from plans.store import (
    get_plan, insert_plan, load_active_plans, load_plans, plan_subject, syllabus_texts,
)
from tasks.schemas import TaskResponse
from tasks.store import normalize_task, row_to_task, save_tasks, subjects_match
from users.utils import local_today

logger = logging.getLogger(__name__)

router = APIRouter()


def _onboarding_data(body: OnboardingRequest, current_user: dict) -> tuple[dict, dict]:
    """Validated plan fields plus any extra onboarding keys."""
    data = body.model_dump(exclude={"syllabus_files", "plan_id"})
    extra = dict(body.model_extra or {})
    if data.get("hours_per_day") is None:
        data["hours_per_day"] = current_user.get("daily_hours") or 4.0
    elif not 0 < data["hours_per_day"] <= 24:
        raise HTTPException(status_code=400, detail="hours_per_day must be between 0 and 24")

    if body.mode == "exam":
        if not (body.level or "").strip():
            raise HTTPException(status_code=400, detail="Exam subject (level) is required")
        try:
            date.fromisoformat((body.exam_date or "")[:10])
        except ValueError:
            raise HTTPException(status_code=400, detail="exam_date must be YYYY-MM-DD")
        data["exam_date"] = body.exam_date[:10]
    elif not (body.skill or "").strip():
        raise HTTPException(status_code=400, detail="Skill is required")
    return data, extra


def _plan_dir(user_id: int, plan_id: int) -> str:
    return os.path.join(config.UPLOAD_DIR, f"user_{user_id}", f"plan_{plan_id}")


@router.get("/onboarding", response_model=List[PlanResponse])
def get_onboarding(current_user: dict = Depends(get_current_user)):
    db = get_db()
    plans = load_plans(db, current_user["id"])
    db.close()
    return [PlanResponse(**p) for p in plans]


@router.post("/onboarding", response_model=PlanResponse)
def create_onboarding(body: OnboardingRequest, current_user: dict = Depends(get_current_user)):
    """Save a goal without generating its schedule."""
    data, extra = _onboarding_data(body, current_user)
    db = get_db()
    try:
        plan_id = insert_plan(db, current_user["id"], data, extra, local_today(current_user))
        db.commit()
        plan = get_plan(db, current_user["id"], plan_id)
    finally:
        db.close()
    logger.info("Saved onboarding data for user %s (plan %s)", current_user["id"], plan_id)
    return PlanResponse(**plan)


@router.delete("/onboarding/{plan_id}")
def delete_onboarding(plan_id: int, current_user: dict = Depends(get_current_user)):
    db = get_db()
    plan = get_plan(db, current_user["id"], plan_id)
    if not plan:
        db.close()
        raise HTTPException(status_code=404, detail="Plan not found")

    plan_dir = _plan_dir(current_user["id"], plan_id)
    if os.path.exists(plan_dir):
        shutil.rmtree(plan_dir)

    db.execute("DELETE FROM tasks WHERE plan_id = ?", (plan_id,))
    db.execute("DELETE FROM plans WHERE id = ?", (plan_id,))
    db.commit()
    db.close()
    return {"message": "Plan deleted"}


@router.post("/onboarding/{plan_id}/files", response_model=PlanFileResponse)
async def upload_plan_file(
    plan_id: int,
    file: UploadFile = File(...),
    current_user: dict = Depends(get_current_user),
):
    db = get_db()
    plan = get_plan(db, current_user["id"], plan_id)
    if not plan:
        db.close()
        raise HTTPException(status_code=404, detail="Plan not found")

    content = await file.read()
    if not content:
        db.close()
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    text = syllabus.extract_text(content, file.content_type, file.filename or "")
    try:
        file_id = syllabus.store_plan_file(
            db, current_user["id"], plan_id, file.filename, content, text
        )
        db.commit()
    finally:
        db.close()

    logger.info("Stored syllabus %s for plan %s (%d chars of text)", file.filename, plan_id, len(text))
    return PlanFileResponse(
        id=file_id, plan_id=plan_id, filename=file.filename or "syllabus",
        file_size=len(content), has_text=bool(text),
    )


@router.get("/onboarding/{plan_id}/files", response_model=List[PlanFileResponse])
def get_plan_files(plan_id: int, current_user: dict = Depends(get_current_user)):
    db = get_db()
    plan = get_plan(db, current_user["id"], plan_id)
    if not plan:
        db.close()
        raise HTTPException(status_code=404, detail="Plan not found")

    rows = db.execute(
        "SELECT * FROM plan_files WHERE plan_id = ? ORDER BY id", (plan_id,)
    ).fetchall()
    db.close()
    return [
        PlanFileResponse(
            id=r["id"], plan_id=r["plan_id"], filename=r["filename"],
            file_size=r["file_size"], has_text=bool(r["extracted_text"]),
        )
        for r in rows
    ]


@router.post("/study-plan/generate", response_model=GeneratedPlanResponse)
def generate_study_plan(body: OnboardingRequest, current_user: dict = Depends(get_current_user)):
    """Generate the schedule for a new goal, fitted around the student's other goals.

    Nothing is saved unless the model returns a valid session list. Tasks are
    written before the plan row so a failed insert never leaves an empty plan.
    """
    data, extra = _onboarding_data(body, current_user)
    user_id = current_user["id"]
    today = local_today(current_user)

    inline_files = []
    for f in body.syllabus_files:
        try:
            content = syllabus.decode_inline(f.data)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        inline_files.append((f.filename, content, syllabus.extract_text(content, f.type, f.filename)))

    db = get_db()
    try:
        existing_plan = None
        if body.plan_id is not None:
            existing_plan = get_plan(db, user_id, body.plan_id)
            if not existing_plan:
                raise HTTPException(status_code=404, detail="Plan not found")

        others = [p for p in load_active_plans(db, user_id, today)
                  if existing_plan is None or p["id"] != existing_plan["id"]]
        texts = syllabus_texts(db, existing_plan["id"]) if existing_plan else []
        texts += [(name, text) for name, _, text in inline_files]
        context = syllabus.build_context(texts)

        generated = planner.generate_plan_tasks(data, others, today, context)
        tasks = [normalize_task(t, default_date=today) for t in generated]

        if existing_plan:
            plan_id = existing_plan["id"]
            db.execute("DELETE FROM tasks WHERE plan_id = ? AND status = 'pending'", (plan_id,))
            saved = save_tasks(db, user_id, tasks, plan_id=plan_id)
            db.execute(
                """UPDATE plans SET mode = ?, subject = ?, level = ?, skill = ?, exam_date = ?,
                       skill_duration = ?, hours_per_day = ?, plan_type = ?, learning_style = ?,
                       syllabus = ?, extra = ?, last_replanned = ? WHERE id = ?""",
                (data["mode"], plan_subject(data), data.get("level"), data.get("skill"),
                 data.get("exam_date"), data.get("skill_duration"), data["hours_per_day"],
                 data["plan_type"], data["learning_style"], data.get("syllabus"),
                 json.dumps({**existing_plan["extra"], **extra}), today, plan_id)
            )
        else:
            saved = save_tasks(db, user_id, tasks)
            plan_id = insert_plan(db, user_id, data, extra, today)
            db.execute(
                f"UPDATE tasks SET plan_id = ? WHERE id IN ({','.join('?' * len(saved))})",
                [plan_id, *[t["id"] for t in saved]]
            )
            for t in saved:
                t["plan_id"] = plan_id

        for name, content, text in inline_files:
            syllabus.store_plan_file(db, user_id, plan_id, name, content, text)
        db.commit()
        plan = get_plan(db, user_id, plan_id)
    finally:
        db.close()

    logger.info("Generated study plan %s for user %s: %d tasks", plan_id, user_id, len(saved))
    return GeneratedPlanResponse(plan=PlanResponse(**plan), tasks=[TaskResponse(**t) for t in saved])


@router.get("/study-plan/active", response_model=ActivePlansResponse)
def get_active_plan(current_user: dict = Depends(get_current_user)):
    """Active goals and their tasks, after the daily replan (if one is due)."""
    today = local_today(current_user)
    replanner.ensure_optimal_plan(current_user, current_user.get("current_mood"))

    db = get_db()
    active = load_active_plans(db, current_user["id"], today)
    if not active:
        db.close()
        return ActivePlansResponse(plans=[], plan=None, tasks=[])

    active_ids = {p["id"] for p in active}
    rows = db.execute(
        "SELECT * FROM tasks WHERE user_id = ? ORDER BY day_date, id", (current_user["id"],)
    ).fetchall()
    db.close()

    tasks = []
    for r in rows:
        if r["plan_id"] in active_ids or (
            r["plan_id"] is None and any(subjects_match(r["subject"], p["subject"]) for p in active)
        ):
            tasks.append(TaskResponse(**row_to_task(r)))

    plans = [PlanResponse(**p) for p in active]
    return ActivePlansResponse(plans=plans, plan=plans[0], tasks=tasks)


@router.post("/study-plan/replan")
def replan(body: Optional[ReplanRequest] = None, current_user: dict = Depends(get_current_user)):
    mood = (body.mood if body else None) or current_user.get("current_mood")
    return replanner.ensure_optimal_plan(current_user, mood, force=True)
