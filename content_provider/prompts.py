from __future__ import annotations  # Prompt templates for the three generation request kinds

from textwrap import dedent
from typing import Dict

from langchain_core.prompts import ChatPromptTemplate

from .schemas import EvaluationRequest, QuestionRequest

RESUME_PROMPT_CHARS = 6000
ANSWER_PROMPT_CHARS = 2000

INTERVIEWER_GUIDANCE = dedent(
    """
    You are a world-class senior technical interviewer conducting a structured interview.
    Your questions reveal true depth of understanding, never surface-level definitions.
    You probe for application, trade-offs, real-world reasoning, and edge cases.
    """
).strip()

QUESTION_RULES = dedent(
    """
    DIFFICULTY GUIDELINES:
    - EASY: test working knowledge and basic application of concepts
    - MEDIUM: test problem-solving, trade-offs, and real-world scenarios
    - HARD: test system design thinking, edge cases, optimization, expert-level nuance

    QUESTION RULES:
    - Never start with "Can you explain..."; use scenario-based or direct probe phrasing
    - Never ask for simple definitions
    - expected_points: 3 to 7 specific concepts, terms, or insights the ideal answer must include
    - follow_up_triggers: 2 to 3 short phrases that, if said by the candidate, suggest shallow understanding
    - rationale: one sentence explaining why you chose this question (internal use only)
    """
).strip()

EVALUATOR_GUIDANCE = dedent(
    """
    You are a strict but fair senior technical interviewer evaluating a candidate's answer.
    You score based on substance, accuracy, and completeness, not verbosity.
    A long answer that misses key points scores lower than a short answer that nails them.
    """
).strip()

EVALUATION_RULES = dedent(
    """
    SCORING RUBRIC (follow this exactly):
    - 10: every expected point covered with expert-level depth and clarity
    - 8-9: most expected points covered, minor gaps, clear understanding
    - 6-7: several points covered but meaningful gaps remain
    - 4-5: partial understanding, significant gaps, some correct points
    - 2-3: mostly incorrect or very shallow, minimal correct content
    - 0-1: wrong answer, "I don't know", irrelevant, or fewer than 20 words

    CONFIDENCE RULES (deterministic):
    - "low" if score <= 4 or the answer has fewer than 50 characters
    - "high" if score >= 8
    - "medium" otherwise

    OUTPUT RULES:
    - strengths: specific things the candidate said that were correct
    - missing_points: specific expected points the candidate did not cover
    - feedback: 2 to 3 sentences, constructive and actionable
    - next_focus_topic: one specific topic to focus on next, or null when the score is 7 or more
    """
).strip()

RECRUITER_GUIDANCE = dedent(
    """
    You are a senior technical recruiter with 15 years of experience evaluating resumes.
    Extract a compact structured profile for use in a technical interview system.
    """
).strip()

RESUME_RULES = dedent(
    """
    STRICT RULES:
    - focus_topics must be specific (e.g. "SQL window functions", not "SQL")
    - experience_level: judge by project depth and years, not by job title
    - red_flags: gaps over 6 months, job-hopping under 1 year, skill mismatch, vague achievements
    - target_roles: 2 to 4 most suitable roles based on the full resume
    - every array: at most 8 items
    - projects: only projects with clear technical detail
    - use an empty array, never null, when a list has no data
    """
).strip()

QUESTION_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", INTERVIEWER_GUIDANCE),
        (
            "human",
            (
                "{mode_context}\n"
                "{weakness_block}"
                "{follow_up_block}\n"
                "INTERVIEW PROGRESS: Question {question_number} of {total_questions}\n"
                "REQUIRED DIFFICULTY: {difficulty}\n\n"
                "{rules}\n"
                "{dedup_block}"
            ),
        ),
    ]
)

EVALUATION_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", EVALUATOR_GUIDANCE),
        (
            "human",
            (
                'QUESTION: "{question_text}"\n'
                "TOPIC: {topic}\n"
                "DIFFICULTY: {difficulty}\n\n"
                "EXPECTED POINTS (an ideal answer covers most of these):\n{expected_points}\n\n"
                'CANDIDATE\'S ANSWER:\n"""\n{answer_text}\n"""\n\n'
                "{recent_block}\n\n"
                "{rules}"
            ),
        ),
    ]
)

RESUME_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", RECRUITER_GUIDANCE),
        ("human", 'RESUME TEXT:\n"""\n{resume_text}\n"""\n\n{rules}'),
    ]
)


def question_inputs(request: QuestionRequest) -> Dict[str, object]:  # Template variables for the next-question prompt
    weakness_block = ""
    if request.weak_topics:
        weakness_block = (
            "\nWEAKNESS ADAPTATION (IMPORTANT):\n"
            f"The candidate has scored below 6/10 on these topics: {', '.join(request.weak_topics)}.\n"
            "Prioritize these weak topics. Ask a question that tests fundamentals if the score was very low.\n"
        )
    follow_up_block = ""
    if request.is_follow_up:
        follow_up_block = (
            "\nFOLLOW-UP MODE (IMPORTANT):\n"
            "This is a follow-up question to probe deeper into a weak answer.\n"
            f'Parent question was: "{request.parent_question_text}"\n'
            "- Reference the parent question explicitly\n"
            "- Dig deeper into a specific gap or concept from that question\n"
            "- Do not introduce a completely new topic\n"
            "- Make this question more targeted and specific\n"
        )
    dedup_block = ""
    if request.asked_fingerprints:
        listed = "\n".join(f'{index}. "{item}"' for index, item in enumerate(request.asked_fingerprints, start=1))
        dedup_block = f"\nALREADY ASKED (do not repeat or paraphrase any of these):\n{listed}"
    return {
        "mode_context": request.mode_context,
        "weakness_block": weakness_block,
        "follow_up_block": follow_up_block,
        "question_number": request.question_number,
        "total_questions": request.total_questions,
        "difficulty": request.difficulty.upper(),
        "rules": QUESTION_RULES,
        "dedup_block": dedup_block,
    }


def evaluation_inputs(request: EvaluationRequest) -> Dict[str, object]:  # Template variables for the evaluation prompt
    if request.recent_scores:
        lines = "\n".join(f"- {item.topic}: {item.score}/10" for item in request.recent_scores)
        recent_block = f"CANDIDATE'S RECENT PERFORMANCE:\n{lines}"
    else:
        recent_block = "This is the first question in this session."
    return {
        "question_text": request.question_text,
        "topic": request.topic,
        "difficulty": request.difficulty.upper(),
        "expected_points": "\n".join(f"{index}. {point}" for index, point in enumerate(request.expected_points, start=1)),
        "answer_text": request.answer_text[:ANSWER_PROMPT_CHARS],
        "recent_block": recent_block,
        "rules": EVALUATION_RULES,
    }


def resume_inputs(resume_text: str) -> Dict[str, object]:  # Template variables for the resume prompt
    return {"resume_text": resume_text[:RESUME_PROMPT_CHARS], "rules": RESUME_RULES}


__all__ = [
    "EVALUATION_PROMPT",
    "QUESTION_PROMPT",
    "RESUME_PROMPT",
    "evaluation_inputs",
    "question_inputs",
    "resume_inputs",
]
