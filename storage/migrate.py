"""SQLite schema migrations."""
from __future__ import annotations

import os
import sqlite3
from typing import Iterable

SCHEMA: Iterable[str] = [
    """
CREATE TABLE IF NOT EXISTS resumes (
  id TEXT PRIMARY KEY,
  owner_id TEXT NOT NULL,
  file_name TEXT NOT NULL,
  raw_text TEXT NOT NULL,
  profile_json TEXT NOT NULL,
  created_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS sessions (
  id TEXT PRIMARY KEY,
  owner_id TEXT NOT NULL,
  mode TEXT NOT NULL CHECK (mode IN ('ROLE', 'TOPICS', 'RESUME')),
  role TEXT,
  topics_json TEXT NOT NULL,
  resume_id TEXT REFERENCES resumes(id),
  difficulty TEXT NOT NULL,
  num_questions INTEGER,
  time_limit_mins INTEGER,
  no_repeats INTEGER NOT NULL,
  focus_weak_areas INTEGER NOT NULL,
  status TEXT NOT NULL CHECK (status IN ('IN_PROGRESS', 'COMPLETED', 'ABANDONED')),
  started_at TEXT NOT NULL,
  ended_at TEXT,
  CHECK ((num_questions IS NULL) <> (time_limit_mins IS NULL))
);
""",
    """
CREATE INDEX IF NOT EXISTS idx_sessions_owner ON sessions(owner_id, started_at);
""",
    """
CREATE TABLE IF NOT EXISTS questions (
  id TEXT PRIMARY KEY,
  session_id TEXT NOT NULL REFERENCES sessions(id),
  seq_index INTEGER NOT NULL,
  question_text TEXT NOT NULL,
  fingerprint TEXT NOT NULL,
  topic TEXT NOT NULL,
  difficulty TEXT NOT NULL,
  expected_points_json TEXT NOT NULL,
  follow_up_triggers_json TEXT NOT NULL,
  parent_question_id TEXT UNIQUE REFERENCES questions(id),
  is_follow_up INTEGER NOT NULL,
  created_at TEXT NOT NULL,
  UNIQUE (session_id, seq_index),
  UNIQUE (session_id, fingerprint),
  CHECK ((parent_question_id IS NULL) = (is_follow_up = 0))
);
""",
    """
CREATE TABLE IF NOT EXISTS answers (
  id TEXT PRIMARY KEY,
  question_id TEXT NOT NULL UNIQUE REFERENCES questions(id),
  answer_text TEXT NOT NULL,
  submitted_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS evaluations (
  id TEXT PRIMARY KEY,
  answer_id TEXT NOT NULL UNIQUE REFERENCES answers(id),
  score INTEGER NOT NULL CHECK (score BETWEEN 0 AND 10),
  strengths_json TEXT NOT NULL,
  missing_points_json TEXT NOT NULL,
  feedback TEXT NOT NULL,
  next_focus_topic TEXT,
  confidence TEXT NOT NULL CHECK (confidence IN ('low', 'medium', 'high')),
  created_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS reports (
  id TEXT PRIMARY KEY,
  session_id TEXT NOT NULL UNIQUE REFERENCES sessions(id),
  overall_score REAL NOT NULL,
  topic_scores_json TEXT NOT NULL,
  strengths_json TEXT NOT NULL,
  weaknesses_json TEXT NOT NULL,
  improvement_tips_json TEXT NOT NULL,
  created_at TEXT NOT NULL
);
""",
]


def migrate(db_path: str = "data/assessments.db") -> None:
    """Apply schema migrations to the SQLite database."""

    directory = os.path.dirname(db_path) or "."
    os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        cur = conn.cursor()
        for stmt in SCHEMA:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


if __name__ == "__main__":
    from config.settings import settings

    migrate(settings.DB_PATH)
