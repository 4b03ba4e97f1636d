from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# Fallback literals for fields the extractor could not locate.
UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_COMPANY = "Unknown Company"
UNKNOWN_LOCATION = "Unknown Location"
NO_DESCRIPTION = "No description available"
SALARY_NOT_SPECIFIED = "Not specified"
UNKNOWN_DATE = "Unknown Date"


@dataclass(frozen=True)
class Job:
    """
    A single job listing as parsed from a detail page.

    Instances are never mutated after the crawler emits them; enrichment
    returns a new copy via `with_enrichment`.
    """

    job_id: str
    title: str
    company: str
    location: str
    posted_date: str
    salary: str
    url: str
    description: str
    expires_date: str = ""

    # Filled by enrichment
    parsed_description: str = ""
    min_degree: str = ""
    min_years_experience: int = 0
    modality: str = ""
    domain: str = ""
    languages: tuple[str, ...] = field(default_factory=tuple)
    technologies: tuple[str, ...] = field(default_factory=tuple)
    is_software_engineer_related: bool = False

    def with_enrichment(self, fields: EnrichmentFields) -> Job:
        """Return a copy of this job with classifier output applied."""
        changes: dict[str, Any] = {
            "parsed_description": fields.parsed_description,
            "expires_date": fields.deadline_date,
            "min_degree": fields.min_degree,
            "min_years_experience": fields.min_years_experience,
            "is_software_engineer_related": fields.is_software_engineer_related,
            "languages": self.languages + tuple(fields.languages),
            "technologies": self.technologies + tuple(fields.technologies),
        }
        if fields.modality:
            changes["modality"] = fields.modality
        if fields.domain:
            changes["domain"] = fields.domain
        return replace(self, **changes)

    def as_record(self) -> dict[str, Any]:
        """Plain-dict output record (lists instead of tuples)."""
        rec = asdict(self)
        rec["languages"] = list(self.languages)
        rec["technologies"] = list(self.technologies)
        return rec


class EnrichmentFields(BaseModel):
    """
    Structured classifier output. The JSON schema of this model is sent as the
    response format and the response body is validated against it.
    """

    model_config = ConfigDict(extra="forbid")

    parsed_description: str = Field(description="A concise summary of the job role and key responsibilities")
    deadline_date: str = Field(
        description="Deadline or expiry date for the job posting. Use 'Ongoing until requisition is closed' if not specified"
    )
    min_degree: Literal["Bachelor's", "Master's", "Ph.D", "Unspecified"]
    min_years_experience: int = Field(
        ge=0,
        le=25,
        description=(
            "Minimum years of professional experience required. If the title contains 'Senior' or 'Sr.' use at "
            "least 4; if it contains 'Principal', 'Staff', 'Lead' or 'Director' use at least 7; if it contains "
            "'Mid-level' use at least 2; otherwise take the years stated in the description, or 0 when none"
        ),
    )
    modality: Literal["Remote", "Hybrid", "In-Office"] = Field(
        description="Work arrangement. Default to 'In-Office' if unclear"
    )
    domain: Literal[
        "Backend",
        "Full-Stack",
        "AI/ML",
        "Data",
        "QA",
        "Front-End",
        "Security",
        "DevOps",
        "Mobile",
        "Site Reliability",
        "Networking",
        "Embedded Systems",
        "Gaming",
        "Financial",
        "Other",
    ] = Field(description="Technical domain. Server-side or microservices work is 'Backend'")
    languages: list[str] = Field(
        description="Programming languages mentioned in the job. Spoken languages like English are not included"
    )
    technologies: list[str] = Field(
        description="Software tools, frameworks, databases and technologies mentioned in the job"
    )
    is_software_engineer_related: bool = Field(
        description=(
            "True only for roles that primarily involve coding or deep technical system design (Software Engineer, "
            "Developer, Data Scientist, ML Engineer, DevOps Engineer, SRE, QA Engineer). False for Project Manager, "
            "Product Manager, Designer, Sales Engineer, IT Support and similar"
        )
    )
