from .accomplishments import extract_accomplishments
from .certifications import extract_certifications
from .contact import extract_contact
from .education import extract_education
from .experience import extract_experience
from .images import extract_images
from .interests import extract_interests
from .posts import extract_posts
from .profile import extract_profile
from .projects import extract_projects
from .recommendations import extract_recommendations
from .skills import extract_skills

__all__ = [
    "extract_accomplishments",
    "extract_certifications",
    "extract_contact",
    "extract_education",
    "extract_experience",
    "extract_images",
    "extract_interests",
    "extract_posts",
    "extract_profile",
    "extract_projects",
    "extract_recommendations",
    "extract_skills",
]
