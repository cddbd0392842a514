# schemas.py
"""
Pydantic models for assistant replies and HTTP request bodies.

Assistant replies are validated loosely: unknown keys are kept, missing
nested fields fall back to defaults. Only the fields the agents actually
read are declared.
"""

import re
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


YEAR_RE = re.compile(r"\d{4}")
YEARS_RE = re.compile(r"(\d+)\s*years?", re.IGNORECASE)
MONTHS_RE = re.compile(r"(\d+)\s*months?", re.IGNORECASE)


def coerce_year(value: Any) -> Optional[int]:
    """Accept 2021, "2021", "2019 - 2021" (first year wins) or nothing."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    match = YEAR_RE.search(str(value))
    return int(match.group(0)) if match else None


# ============================================================================
# Resume parser: canonical shape
# ============================================================================

class TechnicalSkill(BaseModel):
    skill: str
    level: Optional[str] = None  # beginner | intermediate | proficient | expert
    years: Optional[float] = None


class SoftSkill(BaseModel):
    skill: str
    context: Optional[str] = None


class Certification(BaseModel):
    name: str
    year: Optional[int] = None

    @field_validator("year", mode="before")
    @classmethod
    def normalize_year(cls, value: Any) -> Optional[int]:
        return coerce_year(value)


class ParsedSkills(BaseModel):
    technical: List[TechnicalSkill] = Field(default_factory=list)
    soft: List[SoftSkill] = Field(default_factory=list)
    certifications: List[Certification] = Field(default_factory=list)


class Duration(BaseModel):
    years: float = 0
    months: float = 0


class ExperienceEntry(BaseModel):
    title: Optional[str] = None
    company: Optional[str] = None
    duration: Duration = Field(default_factory=Duration)
    highlights: List[str] = Field(default_factory=list)


class EducationEntry(BaseModel):
    degree: Optional[str] = None
    institution: Optional[str] = None
    year: Optional[int] = None

    @field_validator("year", mode="before")
    @classmethod
    def normalize_year(cls, value: Any) -> Optional[int]:
        return coerce_year(value)


class ProjectEntry(BaseModel):
    name: str
    description: str = ""
    technologies: List[str] = Field(default_factory=list)


class StructuredResume(BaseModel):
    """Canonical resume record produced by the parser."""
    parsed_skills: ParsedSkills = Field(default_factory=ParsedSkills)
    experience: List[ExperienceEntry] = Field(default_factory=list)
    education: List[EducationEntry] = Field(default_factory=list)
    projects: List[ProjectEntry] = Field(default_factory=list)

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


# ============================================================================
# Resume parser: legacy shape (flat skill strings, free-text durations)
# ============================================================================

class LegacySkills(BaseModel):
    technical: List[str] = Field(default_factory=list)
    soft: List[str] = Field(default_factory=list)


class LegacyExperience(BaseModel):
    position: Optional[str] = None
    title: Optional[str] = None
    company: Optional[str] = None
    duration: Union[str, Dict[str, Any], None] = None
    description: Optional[str] = None

    def to_entry(self) -> ExperienceEntry:
        return ExperienceEntry(
            title=self.position or self.title,
            company=self.company,
            duration=parse_duration(self.duration),
            highlights=[self.description] if self.description else [],
        )


class LegacyResumePayload(BaseModel):
    skills: LegacySkills
    certifications: List[Certification] = Field(default_factory=list)
    experience: List[LegacyExperience] = Field(default_factory=list)
    education: List[EducationEntry] = Field(default_factory=list)
    projects: List[ProjectEntry] = Field(default_factory=list)

    @field_validator("skills", mode="before")
    @classmethod
    def flat_skill_list(cls, value: Any) -> Any:
        # oldest replies sent one flat list of technical skills
        if isinstance(value, list):
            return {"technical": value}
        return value

    def to_structured(self) -> StructuredResume:
        return StructuredResume(
            parsed_skills=ParsedSkills(
                technical=[TechnicalSkill(skill=s) for s in self.skills.technical],
                soft=[SoftSkill(skill=s) for s in self.skills.soft],
                certifications=self.certifications,
            ),
            experience=[exp.to_entry() for exp in self.experience],
            education=self.education,
            projects=self.projects,
        )


def parse_duration(value: Union[str, Dict[str, Any], None]) -> Duration:
    """
    Turn "2 years 3 months", {"years": 2, "months": 3} or nothing into a Duration.
    """
    if isinstance(value, str):
        years = YEARS_RE.search(value)
        months = MONTHS_RE.search(value)
        return Duration(
            years=int(years.group(1)) if years else 0,
            months=int(months.group(1)) if months else 0,
        )
    if isinstance(value, dict):
        return Duration(years=value.get("years") or 0, months=value.get("months") or 0)
    return Duration()


# ============================================================================
# Loose coercion for assistant replies
# ============================================================================

def as_text(value: Any) -> Optional[str]:
    """Strings pass through, lists are joined, anything else is stringified."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value if item is not None)
    return str(value)


def as_text_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [as_text(item) for item in value if item is not None]
    return [str(value)]


def as_number(value: Any, default: float = 0) -> float:
    if isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


class ReplyModel(BaseModel):
    """
    Base for assistant reply payloads.

    Explicit nulls are treated as missing so the field default applies.
    """
    model_config = ConfigDict(extra="allow")

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


# ============================================================================
# Strategist
# ============================================================================

class RecommendedQuestion(ReplyModel):
    question_text: str
    question_type: Optional[str] = None  # technical | behavioral | situational | general
    related_skill: Optional[str] = None
    difficulty: Optional[str] = None  # easy | medium | hard
    focus_area: Optional[str] = None

    @field_validator("question_text", "question_type", "related_skill", "difficulty", "focus_area", mode="before")
    @classmethod
    def text_fields(cls, value: Any) -> Any:
        return as_text(value)


class JobAnalysis(ReplyModel):
    title: Optional[str] = None
    company: Optional[str] = None
    required_skills: List[Any] = Field(default_factory=list)
    preferred_skills: List[Any] = Field(default_factory=list)
    experience_requirements: Any = None

    @field_validator("title", "company", mode="before")
    @classmethod
    def text_fields(cls, value: Any) -> Any:
        return as_text(value)

    @field_validator("required_skills", "preferred_skills", mode="before")
    @classmethod
    def skill_lists(cls, value: Any) -> Any:
        if isinstance(value, list):
            return value
        return as_text_list(value)


class StrategistResponse(ReplyModel):
    job_analysis: JobAnalysis
    skills_mapping: Dict[str, Any] = Field(default_factory=dict)
    interview_strategy: Dict[str, Any] = Field(default_factory=dict)
    recommended_questions: List[RecommendedQuestion] = Field(default_factory=list)

    @field_validator("skills_mapping", "interview_strategy", mode="before")
    @classmethod
    def object_or_empty(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    @field_validator("recommended_questions", mode="before")
    @classmethod
    def drop_blank_questions(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [
            item for item in value
            if isinstance(item, dict) and str(as_text(item.get("question_text")) or "").strip()
        ]


# ============================================================================
# Interviewer
# ============================================================================

REACTION_TYPES = (
    "greeting",
    "clarification",
    "acknowledgment",
    "transition_to_next",
    "follow_up",
    "conclusion",
)


class NextQuestion(ReplyModel):
    question_text: str
    question_type: Optional[str] = None
    related_skill: Optional[str] = None
    difficulty: Optional[str] = None
    focus_area: Optional[str] = None
    id: Optional[str] = None

    @field_validator(
        "question_text", "question_type", "related_skill", "difficulty", "focus_area", "id", mode="before"
    )
    @classmethod
    def text_fields(cls, value: Any) -> Any:
        return as_text(value)


class InterviewStatus(ReplyModel):
    current_question_index: int = 0
    total_questions: int = 0
    estimated_completion_percentage: float = 0
    areas_covered: List[str] = Field(default_factory=list)
    remaining_areas: List[str] = Field(default_factory=list)

    @field_validator("current_question_index", "total_questions", mode="before")
    @classmethod
    def whole_numbers(cls, value: Any) -> int:
        return max(0, int(as_number(value)))

    @field_validator("estimated_completion_percentage", mode="before")
    @classmethod
    def clamp_percentage(cls, value: Any) -> float:
        return max(0.0, min(100.0, as_number(value)))

    @field_validator("areas_covered", "remaining_areas", mode="before")
    @classmethod
    def text_lists(cls, value: Any) -> List[str]:
        return as_text_list(value)


class InterviewerTurn(ReplyModel):
    message: str = ""
    reaction_type: str = "acknowledgment"
    next_question: Optional[NextQuestion] = None
    interview_status: InterviewStatus = Field(default_factory=InterviewStatus)

    @field_validator("message", "reaction_type", mode="before")
    @classmethod
    def text_fields(cls, value: Any) -> Any:
        return as_text(value)

    @field_validator("next_question", mode="before")
    @classmethod
    def empty_question_is_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = {"question_text": value}
        if not isinstance(value, dict) or not str(as_text(value.get("question_text")) or "").strip():
            return None
        return value

    @field_validator("interview_status", mode="before")
    @classmethod
    def status_object(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    @property
    def is_conclusion(self) -> bool:
        return self.reaction_type == "conclusion"


class InterviewerResponse(ReplyModel):
    interviewer_response: InterviewerTurn


# ============================================================================
# Evaluator
# ============================================================================

class SessionEvaluation(ReplyModel):
    overall_score: float = 0
    technical_score: float = 0
    communication_score: float = 0
    problem_solving_score: float = 0
    culture_fit_score: float = 0
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    summary: str = ""

    @field_validator(
        "overall_score", "technical_score", "communication_score", "problem_solving_score", "culture_fit_score",
        mode="before",
    )
    @classmethod
    def scores(cls, value: Any) -> float:
        return as_number(value)

    @field_validator("strengths", "weaknesses", "recommendations", mode="before")
    @classmethod
    def text_lists(cls, value: Any) -> List[str]:
        return as_text_list(value)

    @field_validator("summary", mode="before")
    @classmethod
    def summary_text(cls, value: Any) -> Any:
        return as_text(value)


class AnswerEvaluation(ReplyModel):
    question_id: str
    answer_quality: float = 0
    feedback: str = ""
    strengths: List[str] = Field(default_factory=list)
    areas_for_improvement: List[str] = Field(default_factory=list)
    suggested_response: Optional[str] = None

    @field_validator("question_id", "feedback", "suggested_response", mode="before")
    @classmethod
    def text_fields(cls, value: Any) -> Any:
        return as_text(value)

    @field_validator("answer_quality", mode="before")
    @classmethod
    def quality(cls, value: Any) -> float:
        return as_number(value)

    @field_validator("strengths", "areas_for_improvement", mode="before")
    @classmethod
    def text_lists(cls, value: Any) -> List[str]:
        return as_text_list(value)


class CombinedEvaluationResponse(ReplyModel):
    session_evaluation: SessionEvaluation
    answer_evaluations: List[AnswerEvaluation] = Field(default_factory=list)

    @field_validator("answer_evaluations", mode="before")
    @classmethod
    def drop_unusable_entries(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict) and item.get("question_id") is not None]


# ============================================================================
# HTTP request bodies
# ============================================================================

class ParseResumeReq(BaseModel):
    resume_text: str


class SaveResumeReq(BaseModel):
    resume_text: str
    title: Optional[str] = None


class AnalyzeJobReq(BaseModel):
    job_description: str
    resume_id: Optional[str] = None


class ContinueInterviewReq(BaseModel):
    thread_id: str
    answer: str
    current_question_id: Optional[str] = None


class SubmitAnswerReq(BaseModel):
    question_id: str
    answer: str


class EvaluateAnswerReq(BaseModel):
    question_id: str
    answer: str
