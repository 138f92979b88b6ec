"""SQLite persistence for assessment sessions, questions, answers and reports."""
