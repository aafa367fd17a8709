SYSTEM_PROMPT = """You are an expert technical interviewer. Score answers strictly and return compact JSON."""

SHORT_ANSWER_PROMPT = """Evaluate this short answer question response.

Question:
---
{question}
---

Answer:
---
{answer}
---

Expected keywords: {keywords}

Score the answer on technical accuracy and depth, independent of keyword use.
Provide constructive feedback, strengths, and areas for improvement.

Return JSON:
{{
  "semantic_score": 0-100,
  "feedback": "1-2 sentences",
  "strengths": [strings],
  "improvements": [strings]
}}"""

CODE_REVIEW_PROMPT = """You are evaluating a coding interview answer. Be fair but rigorous.

Question:
---
{question}
---

Language: {language}

Expected solution approach:
---
{solution}
---

Evaluation criteria:
{criteria}

Candidate's code:
---
{code}
---

Evaluate correctness and logic, code quality and structure, error handling and best practices.
Award partial credit for correct concepts even if the implementation is incomplete.

Return JSON:
{{
  "score": 0-100,
  "criteria_scores": {{"<criterion>": 0-100}},
  "strengths": [strings],
  "improvements": [strings],
  "overall_feedback": "1-2 sentences",
  "code_quality": "excellent" | "good" | "fair" | "poor",
  "completeness": "complete" | "mostly_complete" | "partial" | "incomplete"
}}"""

SUMMARY_PROMPT = """Generate an interview summary for a candidate.

Position: {title}
Job Role: {job_role}
Total Score: {final_score}/{max_score} ({percentage:.1f}%)

Performance breakdown:
{breakdown}

Write a professional 4-5 sentence summary covering:
1. Overall technical competency level for the role
2. Key strengths demonstrated in the responses
3. Areas that need improvement
4. Hiring recommendation: {recommendation}

Be objective, constructive, and specific. Base the assessment on the performance data only.
Return plain text, no JSON."""

BREAKDOWN_LINE = "- Q{n} [{type}, {difficulty}] {score}/{points} pts, {time_taken}s: {question}"


def numbered(items) -> str:
    if not items:
        return "General code quality and correctness"
    return "\n".join(f"{i}. {c}" for i, c in enumerate(items, start=1))
