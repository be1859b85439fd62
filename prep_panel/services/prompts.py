# prep_panel/services/prompts.py
"""Prompt builders for topic content and topic proposals. Pure string templating."""
from __future__ import annotations

from typing import List, Optional

from prep_panel.settings.config import settings

# "is the source text meaningful" policy; a heuristic, tune freely
MEANINGFUL_MIN_CHARS = 50
PLACEHOLDER_MARKERS = ("note:", "error extracting", "requires integration")

SPECIFIC_GUIDANCE = (
    "Use the specific details from the source content above to create personalized, relevant responses."
)
LIMITED_GUIDANCE = (
    "Source content is limited. Generate realistic {role} responses for this topic "
    "using industry best practices and common scenarios."
)


def has_meaningful_content(text: Optional[str]) -> bool:
    if not text or len(text) <= MEANINGFUL_MIN_CHARS:
        return False
    low = text.lower()
    return not any(marker in low for marker in PLACEHOLDER_MARKERS)


def coach_system_prompt(role: Optional[str] = None) -> str:
    role = role or settings.CANDIDATE_ROLE
    return (
        f"You are an interview coach for a {role}. "
        "Write outputs that are concise, technically credible, and easy to speak aloud. "
        "Use simple sentences, minimal filler, and include concrete details (technologies, metrics, architecture). "
        "Maintain a confident but humble tone. Avoid buzzword fluff."
    )


def build_topic_content_messages(
    topic_title: str,
    source_notes: str,
    *,
    category: Optional[str] = None,
    role: Optional[str] = None,
) -> List[dict]:
    role = role or settings.CANDIDATE_ROLE
    meaningful = has_meaningful_content(source_notes)
    goal = f'"{topic_title}"' if not category else f'"{topic_title}" in category "{category}"'
    guidance = SPECIFIC_GUIDANCE if meaningful else LIMITED_GUIDANCE.format(role=role)
    standard = (
        "Incorporate details from the source content where relevant"
        if meaningful
        else f"Create believable {role} scenarios and solutions"
    )

    user = f"""GOAL:
Generate interview preparation content for the topic: {goal}.

SOURCE CONTENT:
{source_notes}

CONTENT GUIDANCE:
{guidance}

OUTPUT FORMAT (JSON only):
{{
  "key_points": [
    "3-5 specific, actionable bullet points; 10-20 words each; include concrete technologies, metrics, or achievements when possible",
    "Focus on technical details, business impact, or leadership examples relevant to '{topic_title}'",
    "Make each point interview-ready and easy to expand upon"
  ],
  "script": "A 60-120 second first-person narrative: context, challenge, approach with specific technologies, impact. Conversational but technical.",
  "cross_questions": [
    {{"question": "Follow-up an interviewer would ask about '{topic_title}'", "answer": "Concise, specific answer"}},
    {{"question": "Technical deep-dive question about implementation details", "answer": "..."}},
    {{"question": "Situational question about challenges or trade-offs", "answer": "..."}},
    {{"question": "Follow-up about scale, performance, or optimization", "answer": "..."}}
  ]
}}

QUALITY STANDARDS:
- All content should be specific and actionable, not generic
- Cross-questions should be realistic follow-ups an interviewer would actually ask
- {standard}
- ALWAYS include exactly 4 cross_questions
- Return ONLY the JSON object, no markdown"""

    return [
        {"role": "system", "content": coach_system_prompt(role)},
        {"role": "user", "content": user},
    ]


def build_topic_proposal_messages(
    documents_text: str,
    *,
    include_content: bool = False,
    role: Optional[str] = None,
) -> List[dict]:
    role = role or settings.CANDIDATE_ROLE
    system = (
        f"You are an expert interview preparation coach for a {role}. "
        "Analyze the provided documents (resume, job description, supporting documents) and generate "
        "structured interview preparation topics. Each topic should be specific, relevant, and actionable."
    )

    content_fields = ""
    content_rule = ""
    if include_content:
        content_fields = """,
      "key_points": ["3-5 specific bullet points with technologies and metrics"],
      "speaking_script": "60-120 second first-person narrative",
      "cross_questions": [{"question": "Realistic follow-up", "answer": "Specific answer"}]"""
        content_rule = "\n6. Every topic MUST include key_points, speaking_script and 3-4 cross_questions"

    user = f"""GOAL:
Generate interview preparation topics based on the following documents:

DOCUMENTS:
{documents_text}

REQUIREMENTS:
1. Create 8-12 specific topics that would be valuable for interview preparation
2. Each topic should be focused and actionable
3. Include a mix of technical, behavioral, and project-based topics
4. Topics should be relevant to the specific role and company mentioned in the documents
5. Use specific technologies, frameworks, and concepts mentioned in the documents{content_rule}

OUTPUT FORMAT (JSON only):
{{
  "topics": [
    {{
      "title": "Topic Title",
      "slug": "topic-title",
      "category": "Technical|Behavioral|Projects|Architecture|Leadership",
      "icon_name": "database|code|users|layers|target|briefcase|chart|settings",
      "color": "blue|green|red|yellow|purple|orange|pink|indigo",
      "sort_order": 1{content_fields}
    }}
  ]
}}

Make topics specific to the technologies, projects, and experiences mentioned in the documents."""

    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]
