"""Lightweight CLI helpers for inspecting stored assessment sessions."""
from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from config.settings import settings
from storage.migrate import migrate
from storage.reports import load_report
from storage.sessions import list_sessions


def tail_sessions(limit: int = 20) -> None:
    for session in list_sessions(limit):
        cfg = session.config
        limit_text = f"{cfg.num_questions}q" if cfg.num_questions is not None else f"{cfg.time_limit_mins}min"
        ended = session.ended_at.isoformat() if session.ended_at else "-"
        print(
            f"[{session.started_at.isoformat()}] {session.id} owner={session.owner_id} "
            f"mode={cfg.mode.kind} {cfg.difficulty} {limit_text} status={session.status.value} ended={ended}"
        )


def show_report(session_id: str) -> bool:
    report = load_report(session_id)
    if report is None:
        print(f"No report stored for session {session_id}", file=sys.stderr)
        return False
    print(f"Session {report.session_id} overall={report.overall_score}")
    for item in report.topic_scores:
        print(f"  {item.topic}: {item.avg_score} ({item.question_count} questions)")
    for label, items in (("Strengths", report.strengths), ("Weaknesses", report.weaknesses), ("Tips", report.improvement_tips)):
        print(f"{label}:")
        for entry in items:
            print(f"  - {entry}")
    return True


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--tail-sessions", type=int, help="Show the most recently started sessions")
    parser.add_argument("--show-report", metavar="SESSION_ID", help="Print the stored report of a session")
    args = parser.parse_args(argv)

    migrate(settings.DB_PATH)
    status = 0
    if args.tail_sessions:
        tail_sessions(args.tail_sessions)
    if args.show_report and not show_report(args.show_report):
        status = 1
    return status


if __name__ == "__main__":
    sys.exit(main())
