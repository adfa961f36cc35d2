from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ProfileHeader(BaseModel):
    """Identity block from the top card and the About section.

    DOM values win; JSON-LD structured data fills whatever the DOM missed.
    """
    name: Optional[str] = None
    headline: Optional[str] = None
    location: Optional[str] = None
    profile_image: Optional[str] = None
    banner_image: Optional[str] = None
    connections: Optional[str] = None
    followers: Optional[str] = None
    open_to_work: bool = False
    about: Optional[str] = None


class ExperienceEntry(BaseModel):
    title: Optional[str] = None
    company: Optional[str] = None
    date_range: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    company_logo: Optional[str] = None


class EducationEntry(BaseModel):
    school: Optional[str] = None
    school_logo: Optional[str] = None
    degree: Optional[str] = None
    field_of_study: Optional[str] = None
    dates: Optional[str] = None
    grade: Optional[str] = None
    activities: Optional[str] = None
    description: Optional[str] = None


class CertificationEntry(BaseModel):
    """Normalized license / certification item.

    `issuing_organization` is nulled when it merely repeats `name`, which
    happens when the rendered lines were not separated cleanly.
    """
    name: Optional[str] = None
    issuing_organization: Optional[str] = None
    issue_date: Optional[str] = None
    expiration_date: Optional[str] = None
    credential_id: Optional[str] = None
    credential_url: Optional[str] = None
    logo: Optional[str] = None


class SkillEntry(BaseModel):
    name: str
    endorsements: Optional[str] = None


class ProjectEntry(BaseModel):
    title: Optional[str] = None
    date_range: Optional[str] = None
    description: Optional[str] = None
    link: Optional[str] = None


class InterestEntry(BaseModel):
    name: str
    subtitle: Optional[str] = None
    link: Optional[str] = None


class PostEntry(BaseModel):
    text: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    video: Optional[str] = None
    reactions: Optional[str] = None
    comments: Optional[str] = None
    reposts: Optional[str] = None
    date: Optional[str] = None
    type: str = "post"


class Website(BaseModel):
    label: str = "Website"
    url: str


class ContactInfo(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None
    websites: List[Website] = Field(default_factory=list)
    twitter: Optional[str] = None
    birthday: Optional[str] = None
    connected_date: Optional[str] = None
    address: Optional[str] = None


class RecommendationEntry(BaseModel):
    name: Optional[str] = None
    title: Optional[str] = None
    photo: Optional[str] = None
    text: Optional[str] = None


class Recommendations(BaseModel):
    received: List[RecommendationEntry] = Field(default_factory=list)
    given: List[RecommendationEntry] = Field(default_factory=list)


class LanguageEntry(BaseModel):
    name: str
    proficiency: Optional[str] = None


class HonorEntry(BaseModel):
    title: str
    issuer: Optional[str] = None
    date: Optional[str] = None
    description: Optional[str] = None


class PublicationEntry(BaseModel):
    title: str
    publisher: Optional[str] = None
    date: Optional[str] = None
    url: Optional[str] = None


class VolunteerEntry(BaseModel):
    role: str
    organization: Optional[str] = None
    dates: Optional[str] = None


class CourseEntry(BaseModel):
    name: str
    number: Optional[str] = None


class OrganizationEntry(BaseModel):
    name: str
    position: Optional[str] = None
    dates: Optional[str] = None


class Accomplishments(BaseModel):
    languages: List[LanguageEntry] = Field(default_factory=list)
    honors: List[HonorEntry] = Field(default_factory=list)
    publications: List[PublicationEntry] = Field(default_factory=list)
    volunteer: List[VolunteerEntry] = Field(default_factory=list)
    courses: List[CourseEntry] = Field(default_factory=list)
    organizations: List[OrganizationEntry] = Field(default_factory=list)

    def total(self) -> int:
        return sum(len(getattr(self, name)) for name in type(self).model_fields)


class ImageCollection(BaseModel):
    profile_photo: Optional[str] = None
    banner_image: Optional[str] = None
    company_logos: List[str] = Field(default_factory=list)
    school_logos: List[str] = Field(default_factory=list)
    certification_logos: List[str] = Field(default_factory=list)
    post_images: List[str] = Field(default_factory=list)
    recommendation_photos: List[str] = Field(default_factory=list)
    all_urls: List[str] = Field(default_factory=list)


class ProfileMeta(BaseModel):
    profile_url: str
    scraped_at: str
    duration_ms: int = 0
    from_cache: bool = False
    degraded_sections: Dict[str, str] = Field(default_factory=dict)
    debug: List[str] = Field(default_factory=list)


class AggregatedProfile(BaseModel):
    """Everything one scrape produced, plus provenance metadata.

    This is the unit stored in the cache and returned to callers.
    """
    profile: ProfileHeader = Field(default_factory=ProfileHeader)
    contact: Optional[ContactInfo] = None
    recommendations: Recommendations = Field(default_factory=Recommendations)
    accomplishments: Accomplishments = Field(default_factory=Accomplishments)
    experience: List[ExperienceEntry] = Field(default_factory=list)
    education: List[EducationEntry] = Field(default_factory=list)
    certifications: List[CertificationEntry] = Field(default_factory=list)
    skills: List[SkillEntry] = Field(default_factory=list)
    projects: List[ProjectEntry] = Field(default_factory=list)
    interests: List[InterestEntry] = Field(default_factory=list)
    posts: List[PostEntry] = Field(default_factory=list)
    images: ImageCollection = Field(default_factory=ImageCollection)
    meta: Optional[ProfileMeta] = None


class ExtractionResult(BaseModel):
    """Outcome of one extractor run.

    `degraded` marks a value that is only the section's empty default;
    `cause` keeps the error text that forced it.
    """
    value: Any = None
    degraded: bool = False
    cause: Optional[str] = None

    @classmethod
    def ok(cls, value: Any) -> "ExtractionResult":
        return cls(value=value)

    @classmethod
    def empty(cls, value: Any, cause: str) -> "ExtractionResult":
        return cls(value=value, degraded=True, cause=cause)
