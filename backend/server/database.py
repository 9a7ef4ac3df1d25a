"""SQLite database: connection, schema and migrations."""

import logging
import os
import sqlite3

from server import config

logger = logging.getLogger(__name__)


def get_db():
    conn = sqlite3.connect(config.DB_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db():
    os.makedirs(config.UPLOAD_DIR, exist_ok=True)
    conn = get_db()

    conn.executescript("""
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT UNIQUE NOT NULL,
            password_hash TEXT NOT NULL DEFAULT '',
            auth_token TEXT,
            daily_hours REAL DEFAULT 4.0,
            timezone_offset INTEGER DEFAULT 0,
            current_mood TEXT,
            last_mood_date TEXT,
            current_streak INTEGER DEFAULT 0,
            last_streak_date TEXT,
            streak_history TEXT DEFAULT '[]',
            created_at TEXT DEFAULT (datetime('now'))
        );

        CREATE TABLE IF NOT EXISTS mood_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            mood TEXT NOT NULL,
            day_date TEXT NOT NULL,
            created_at TEXT DEFAULT (datetime('now')),
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS plans (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            mode TEXT NOT NULL CHECK(mode IN ('exam', 'skill')),
            subject TEXT NOT NULL,
            level TEXT,
            skill TEXT,
            exam_date TEXT,
            skill_duration TEXT,
            hours_per_day REAL DEFAULT 4.0,
            plan_type TEXT DEFAULT 'balanced',
            learning_style TEXT DEFAULT 'Mixed',
            syllabus TEXT,
            extra TEXT DEFAULT '{}',
            last_replanned TEXT,
            created_at TEXT DEFAULT (datetime('now')),
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS plan_files (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            plan_id INTEGER NOT NULL,
            filename TEXT NOT NULL,
            file_path TEXT NOT NULL,
            file_size INTEGER,
            extracted_text TEXT,
            uploaded_at TEXT DEFAULT (datetime('now')),
            FOREIGN KEY (plan_id) REFERENCES plans(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS tasks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            plan_id INTEGER,
            subject TEXT NOT NULL,
            topic TEXT NOT NULL,
            subtopic TEXT,
            duration TEXT,
            day_date TEXT,
            session_type TEXT,
            ai_explanation TEXT,
            status TEXT DEFAULT 'pending' CHECK(status IN ('pending', 'in_progress', 'completed')),
            quiz_status TEXT,
            completed_subtopics TEXT DEFAULT '[]',
            is_revision INTEGER DEFAULT 0,
            created_at TEXT DEFAULT (datetime('now')),
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
            FOREIGN KEY (plan_id) REFERENCES plans(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS quiz_results (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            task_id INTEGER,
            subject TEXT,
            topic TEXT,
            score INTEGER NOT NULL,
            total INTEGER NOT NULL,
            weak_subtopics TEXT DEFAULT '[]',
            stable_subtopics TEXT DEFAULT '[]',
            created_at TEXT DEFAULT (datetime('now')),
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
        );

        CREATE INDEX IF NOT EXISTS idx_users_token ON users(auth_token);
        CREATE INDEX IF NOT EXISTS idx_plans_user ON plans(user_id);
        CREATE INDEX IF NOT EXISTS idx_plan_files_plan ON plan_files(plan_id);
        CREATE INDEX IF NOT EXISTS idx_tasks_user_day ON tasks(user_id, day_date);
        CREATE INDEX IF NOT EXISTS idx_tasks_plan ON tasks(plan_id);
        CREATE INDEX IF NOT EXISTS idx_quiz_user ON quiz_results(user_id);
        CREATE INDEX IF NOT EXISTS idx_mood_user ON mood_history(user_id, day_date);
    """)

    # Migrations: columns added after the first release
    user_columns = {row[1] for row in conn.execute("PRAGMA table_info(users)").fetchall()}
    if "timezone_offset" not in user_columns:
        conn.execute("ALTER TABLE users ADD COLUMN timezone_offset INTEGER DEFAULT 0")
    if "streak_history" not in user_columns:
        conn.execute("ALTER TABLE users ADD COLUMN streak_history TEXT DEFAULT '[]'")

    plan_columns = {row[1] for row in conn.execute("PRAGMA table_info(plans)").fetchall()}
    if "last_replanned" not in plan_columns:
        conn.execute("ALTER TABLE plans ADD COLUMN last_replanned TEXT")
    if "extra" not in plan_columns:
        conn.execute("ALTER TABLE plans ADD COLUMN extra TEXT DEFAULT '{}'")

    task_columns = {row[1] for row in conn.execute("PRAGMA table_info(tasks)").fetchall()}
    if "is_revision" not in task_columns:
        conn.execute("ALTER TABLE tasks ADD COLUMN is_revision INTEGER DEFAULT 0")
    if "quiz_status" not in task_columns:
        conn.execute("ALTER TABLE tasks ADD COLUMN quiz_status TEXT")

    file_columns = {row[1] for row in conn.execute("PRAGMA table_info(plan_files)").fetchall()}
    if "extracted_text" not in file_columns:
        conn.execute("ALTER TABLE plan_files ADD COLUMN extracted_text TEXT")

    conn.commit()
    conn.close()
    logger.info("Database ready at %s", config.DB_PATH)
