"""Syllabus documents attached at onboarding."""
from __future__ import annotations

import base64
import binascii
import logging
import os
import uuid

import fitz  # PyMuPDF

from server import config

logger = logging.getLogger(__name__)


def extract_text(content: bytes, mime_type: str | None, filename: str = "") -> str:
    """Plain text of a PDF or text document; empty string for anything else."""
    mime_type = (mime_type or "").lower()
    if mime_type == "application/pdf" or filename.lower().endswith(".pdf"):
        try:
            doc = fitz.open(stream=content, filetype="pdf")
        except (fitz.FileDataError, RuntimeError) as exc:
            logger.warning("Could not open PDF %s: %s", filename, exc)
            return ""
        text = ""
        for page in doc:
            text += page.get_text() + "\n"
        doc.close()
        return text.strip()
    if mime_type.startswith("text/") or filename.lower().endswith((".txt", ".md")):
        return content.decode("utf-8", errors="replace").strip()
    logger.info("Skipping text extraction for %s (%s)", filename, mime_type or "unknown type")
    return ""


def decode_inline(data: str) -> bytes:
    """Decode base64 file data, tolerating a data: URL prefix."""
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Invalid base64 file data: {exc}") from exc


def build_context(texts: list[tuple[str, str]], limit: int = config.SYLLABUS_CHAR_LIMIT) -> str:
    """Join (filename, text) pairs under headers, truncated to `limit` chars."""
    parts = []
    total = 0
    for filename, text in texts:
        if not text:
            continue
        block = f"[SYLLABUS: {filename}]\n{text}"
        if total + len(block) > limit:
            remaining = limit - total
            if remaining <= 0:
                break
            block = block[:remaining] + "\n[TRUNCATED: file too large]"
        parts.append(block)
        total += len(block)
        if total >= limit:
            break
    return "\n\n".join(parts)


def store_plan_file(db, user_id: int, plan_id: int, filename: str, content: bytes,
                    extracted_text: str) -> int:
    plan_dir = os.path.join(config.UPLOAD_DIR, f"user_{user_id}", f"plan_{plan_id}")
    os.makedirs(plan_dir, exist_ok=True)

    safe_name = (filename or "syllabus").replace("/", "_").replace("\\", "_")
    # Same-named uploads to one plan must not overwrite each other
    file_path = os.path.join(plan_dir, f"{uuid.uuid4().hex[:8]}_{safe_name}")
    with open(file_path, "wb") as f:
        f.write(content)

    cursor = db.execute(
        """INSERT INTO plan_files (plan_id, filename, file_path, file_size, extracted_text)
           VALUES (?, ?, ?, ?, ?)""",
        (plan_id, safe_name, file_path, len(content), extracted_text)
    )
    return cursor.lastrowid
