from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Dict, List

from models.extracted_profile import ExtractedProfile
from models.extraction_request import ProfileKind


PROMPT_NAME = "profile_extraction_v1"

_TIER_ONE = [
    "Basic profile info: name, headline, currentRole, currentCompany, location, about",
    "Experience/work history: ALL job entries with titles, companies, durations, descriptions",
    "Education: ALL education entries with schools, degrees, fields, years, grades, activities",
    "Certifications: ALL certifications/licenses found",
    "Awards: ALL awards/honors/recognitions found",
]
_TIER_TWO = [
    "Skills",
    "Volunteer work: organizations, roles",
    "Following data: companies followed, people followed",
    "Activity content: recent posts and their likes/comments/shares",
    "Social metrics: followers, connections, mutual connections, engagement totals",
]

# Own profiles feed message personalization: the member's story and skills matter
# more than social signals. Target profiles are researched for outreach, so
# activity and engagement move up right after identity and work history.
_TARGET_TIER_TWO = [
    "Activity content: recent posts and their likes/comments/shares",
    "Social metrics: followers, connections, mutual connections, engagement totals",
    "Skills",
    "Following data: companies followed, people followed",
    "Volunteer work: organizations, roles",
]


@dataclass(frozen=True)
class PromptPair:
    system: str
    user: str

    def messages(self, document_text: str) -> List[Dict[str, str]]:
        """Chat-style message list; the page text travels as its own user message."""
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.user},
            {"role": "user", "content": document_text},
        ]


def schema_skeleton_json() -> str:
    return json.dumps(ExtractedProfile.prompt_skeleton(), indent=2, ensure_ascii=False)


def _bullets(items: List[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def build_prompt(kind: ProfileKind) -> PromptPair:
    """System/user prompt for one profile kind. Pure: same kind, same text."""
    tier_two = _TIER_TWO if kind is ProfileKind.OWN else _TARGET_TIER_TWO

    system = f"""You are a LinkedIn profile data extraction expert. Your task is to analyze the HTML of a profile page and extract the profile into valid JSON.

EXTRACTION PRIORITY:
TIER 1 (HIGHEST PRIORITY - extract first and completely):
{_bullets(_TIER_ONE)}

TIER 2 (SECONDARY - extract after TIER 1):
{_bullets(tier_two)}

REQUIREMENTS:
1. Extract TIER 1 data completely before moving to TIER 2
2. Return ONLY valid JSON - no markdown, no explanations, no comments
3. Use the exact JSON structure provided by the user message
4. Ignore styling, navigation and layout elements
5. If a section is empty, use an empty array [] or empty string ""
6. For arrays, extract EVERY item found
7. Copy counts (followers, connections, likes) as shown, for example 1.2K or 500+"""

    user = f"""Extract LinkedIn profile data from the HTML that follows as a separate message.

Return JSON with this EXACT structure:

{schema_skeleton_json()}

Return ONLY valid JSON. No explanations/markdown."""
    return PromptPair(system=system, user=user)
