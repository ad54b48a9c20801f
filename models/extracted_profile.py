from __future__ import annotations

import typing
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from utils.number_parsing import parse_float_shorthand, parse_int_shorthand


class _SchemaModel(BaseModel):
    """Base for every piece of the extraction schema.

    The same classes feed the prompt skeleton (see ``prompt_skeleton``) and the
    validator, so the two cannot drift apart. Model output is best-effort:
    nulls fall back to defaults, numbers are accepted for text fields, and lists
    of scalars are joined when a single string is expected.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)

    @model_validator(mode="before")
    @classmethod
    def tolerate_model_output(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        text_keys = set()
        for name, info in cls.model_fields.items():
            if info.annotation is str:
                text_keys.add(name)
                if info.alias:
                    text_keys.add(info.alias)
        cleaned: Dict[str, Any] = {}
        for key, value in data.items():
            if value is None:
                continue
            if key in text_keys and isinstance(value, list):
                value = "; ".join(str(v) for v in value if isinstance(v, (str, int, float)))
            cleaned[key] = value
        return cleaned

    @classmethod
    def prompt_skeleton(cls) -> Dict[str, Any]:
        """Example JSON shape (aliases as keys, descriptions as placeholder values)."""
        skeleton: Dict[str, Any] = {}
        for name, info in cls.model_fields.items():
            key = info.alias or name
            annotation = info.annotation
            if typing.get_origin(annotation) is list:
                (item_type,) = typing.get_args(annotation)
                if isinstance(item_type, type) and issubclass(item_type, _SchemaModel):
                    skeleton[key] = [item_type.prompt_skeleton()]
                else:
                    skeleton[key] = [f"{info.description} 1", f"{info.description} 2"]
            elif isinstance(annotation, type) and issubclass(annotation, _SchemaModel):
                skeleton[key] = annotation.prompt_skeleton()
            else:
                skeleton[key] = info.description or key
        return skeleton


class ProfileInfo(_SchemaModel):
    name: str = Field(default="", description="Full Name")
    first_name: str = Field(default="", alias="firstName", description="First Name")
    last_name: str = Field(default="", alias="lastName", description="Last Name")
    headline: str = Field(default="", description="Professional Headline")
    current_role: str = Field(default="", alias="currentRole", description="Current Job Title")
    current_company: str = Field(default="", alias="currentCompany", description="Current Company Name")
    location: str = Field(default="", description="City, Country")
    about: str = Field(default="", description="About section text")
    followers_count: Optional[int] = Field(default=None, alias="followersCount", description="Number of followers")
    connections_count: Optional[int] = Field(default=None, alias="connectionsCount", description="Number of connections")
    mutual_connections: Optional[int] = Field(default=None, alias="mutualConnections", description="Number of mutual connections")

    @field_validator("followers_count", "connections_count", "mutual_connections", mode="before")
    @classmethod
    def parse_counts(cls, v: Any) -> Optional[int]:
        return parse_int_shorthand(v)


class ExperienceItem(_SchemaModel):
    title: str = Field(default="", description="Job Title")
    company: str = Field(default="", description="Company Name")
    company_url: str = Field(default="", alias="companyUrl", description="Company LinkedIn URL if available")
    duration: str = Field(default="", description="Start Date - End Date")
    start_date: str = Field(default="", alias="startDate", description="Start Date")
    end_date: str = Field(default="", alias="endDate", description="End Date or Present")
    location: str = Field(default="", description="Job location")
    description: str = Field(default="", description="Job description and achievements - full content")


class EducationItem(_SchemaModel):
    school: str = Field(default="", description="University/School Name")
    degree: str = Field(default="", description="Degree Type")
    field: str = Field(default="", description="Field of Study")
    start_year: str = Field(default="", alias="startYear", description="Start Year")
    end_year: str = Field(default="", alias="endYear", description="End Year")
    duration: str = Field(default="", description="Start Year - End Year")
    grade: str = Field(default="", description="GPA or Grade if available")
    activities: str = Field(default="", description="Activities & societies if available")
    description: str = Field(default="", description="Additional details if available")


class AwardItem(_SchemaModel):
    title: str = Field(default="", description="Award Title")
    issuer: str = Field(default="", description="Issuing Organization")
    date: str = Field(default="", description="Award Date")
    description: str = Field(default="", description="Award description if available")


class CertificationItem(_SchemaModel):
    name: str = Field(default="", description="Certification Name")
    issuer: str = Field(default="", description="Issuing Organization")
    date: str = Field(default="", description="Issue Date")
    url: str = Field(default="", description="Certificate URL if available")
    description: str = Field(default="", description="Certificate description if available")


class VolunteerItem(_SchemaModel):
    organization: str = Field(default="", description="Organization Name")
    role: str = Field(default="", description="Volunteer Role")
    cause: str = Field(default="", description="Cause area if available")
    start_date: str = Field(default="", alias="startDate", description="Start Date if available")
    end_date: str = Field(default="", alias="endDate", description="End Date if available")
    description: str = Field(default="", description="Description of volunteer work")


class ActivityItem(_SchemaModel):
    kind: str = Field(default="", alias="type", description="post|article|share|video")
    content: str = Field(default="", description="Activity content preview")
    date: str = Field(default="", description="Activity date")
    likes: Optional[int] = Field(default=None, description="Number of likes")
    comments: Optional[int] = Field(default=None, description="Number of comments")
    shares: Optional[int] = Field(default=None, description="Number of shares")

    @field_validator("likes", "comments", "shares", mode="before")
    @classmethod
    def parse_counts(cls, v: Any) -> Optional[int]:
        return parse_int_shorthand(v)


class Engagement(_SchemaModel):
    total_likes: Optional[int] = Field(default=None, alias="totalLikes", description="Sum of all likes across posts")
    total_comments: Optional[int] = Field(default=None, alias="totalComments", description="Sum of all comments across posts")
    total_shares: Optional[int] = Field(default=None, alias="totalShares", description="Sum of all shares across posts")
    average_likes: Optional[float] = Field(default=None, alias="averageLikes", description="Average likes per post")

    @field_validator("total_likes", "total_comments", "total_shares", mode="before")
    @classmethod
    def parse_counts(cls, v: Any) -> Optional[int]:
        return parse_int_shorthand(v)

    @field_validator("average_likes", mode="before")
    @classmethod
    def parse_average(cls, v: Any) -> Optional[float]:
        return parse_float_shorthand(v)


def _names(items: Any) -> List[str]:
    if not isinstance(items, list):
        return []
    out: List[str] = []
    for item in items:
        if isinstance(item, str):
            text = item.strip()
        elif isinstance(item, (int, float)) and not isinstance(item, bool):
            text = str(item)
        elif isinstance(item, dict):
            text = str(item.get("name") or item.get("title") or "").strip()
        else:
            text = ""
        if text:
            out.append(text)
    return out


class ExtractedProfile(_SchemaModel):
    """Schema-conformant extraction result.

    Usable only when ``is_acceptable()`` holds; every other field is best-effort.
    """

    profile: ProfileInfo = Field(default_factory=ProfileInfo)
    experience: List[ExperienceItem] = Field(default_factory=list)
    education: List[EducationItem] = Field(default_factory=list)
    awards: List[AwardItem] = Field(default_factory=list)
    certifications: List[CertificationItem] = Field(default_factory=list)
    volunteer: List[VolunteerItem] = Field(default_factory=list)
    following_companies: List[str] = Field(default_factory=list, alias="followingCompanies", description="Company Name")
    following_people: List[str] = Field(default_factory=list, alias="followingPeople", description="Person Name")
    activity: List[ActivityItem] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list, description="Skill")
    engagement: Engagement = Field(default_factory=Engagement)

    @field_validator("experience", "education", "awards", "certifications", "volunteer", "activity", mode="before")
    @classmethod
    def only_objects(cls, v: Any) -> Any:
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, dict)]

    @field_validator("following_companies", "following_people", "skills", mode="before")
    @classmethod
    def only_names(cls, v: Any) -> List[str]:
        return _names(v)

    def is_acceptable(self) -> bool:
        """Acceptance gate: a name plus at least one experience or education entry."""
        if not self.profile.name.strip():
            return False
        return bool(self.experience) or bool(self.education)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
