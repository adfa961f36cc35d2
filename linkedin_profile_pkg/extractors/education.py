import logging
from typing import Dict, List

from playwright.async_api import Page

from ..config import ScraperSettings
from ..extraction import EDUCATION_CLASSIFIERS, classify_lines, item_lines
from ..models import EducationEntry
from ..selectors import SectionSelectors
from .common import read_section, snapshot_if_empty

logger = logging.getLogger(__name__)

SECTION = SectionSelectors(
    title="Education",
    sdui="[data-view-name='profile-card-education']",
    legacy="#education",
)


def parse_education_item(lines: List[str], logo: str | None = None) -> EducationEntry | None:
    """School is the first line; the first short unclassified line is the degree.

    "Bachelor of Technology, Computer Science" splits into degree and field
    of study on the first comma.
    """
    if not lines:
        return None

    entry = EducationEntry(school=lines[0], school_logo=logo)
    fields, leftovers = classify_lines(lines[1:], EDUCATION_CLASSIFIERS)
    entry.dates = fields.get("dates")
    entry.grade = fields.get("grade")
    entry.activities = fields.get("activities")

    extra: List[str] = []
    for line in leftovers:
        if entry.degree is None and len(line) < 100 and "·" not in line:
            degree, _, field_of_study = line.partition(",")
            entry.degree = degree.strip()
            entry.field_of_study = field_of_study.strip() or None
        elif len(line) > 30:
            extra.append(line)

    descriptions = [d for d in [fields.get("description")] + extra if d]
    entry.description = "\n".join(descriptions) or None
    return entry


def parse_education(items: List[Dict]) -> List[EducationEntry]:
    results: List[EducationEntry] = []
    for item in items:
        entry = parse_education_item(item_lines(item, SECTION.title), item.get("img"))
        if entry is not None and entry.school:
            results.append(entry)
    return results


async def extract_education(page: Page, settings: ScraperSettings) -> List[EducationEntry]:
    logger.info("Extracting education...")
    items, strat = await read_section(page, SECTION, "education", settings)
    education = parse_education(items)
    logger.info("Extracted %d education entries (%s)", len(education), strat)
    await snapshot_if_empty(page, "education", education, settings)
    return education
