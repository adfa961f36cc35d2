import logging
from typing import Dict, List

from playwright.async_api import Page

from ..config import ScraperSettings
from ..extraction import EXPERIENCE_CLASSIFIERS, classify_lines, dedupe_title_org, find_range_index, item_lines
from ..models import ExperienceEntry
from ..selectors import SectionSelectors
from .common import read_section, snapshot_if_empty

logger = logging.getLogger(__name__)

SECTION = SectionSelectors(
    title="Experience",
    sdui="[data-view-name='profile-card-experience']",
    legacy="#experience",
)


def parse_experience_item(lines: List[str], logo: str | None = None) -> ExperienceEntry | None:
    """Positional fields first, then classifiers over the rest.

    Lines before the date range are title and company; anything after it is
    matched against the location classifier or folded into the description.
    """
    if not lines:
        return None

    entry = ExperienceEntry(company_logo=logo)
    date_idx = find_range_index(lines)
    if date_idx >= 2:
        entry.title, entry.company = lines[0], lines[1]
    elif date_idx == 1:
        entry.title = lines[0]
    elif date_idx == -1:
        entry.title = lines[0]
        entry.company = lines[1] if len(lines) >= 2 else None

    rest = lines[date_idx:] if date_idx >= 0 else lines[2:]
    fields, _ = classify_lines(rest, EXPERIENCE_CLASSIFIERS)
    entry.date_range = fields.get("date_range")
    entry.location = fields.get("location")
    entry.description = fields.get("description")
    if entry.company:
        # "Acme · Full-time" keeps only the organization
        entry.company = entry.company.split(" · ")[0].strip() or None
    entry.company = dedupe_title_org(entry.title, entry.company)
    return entry


def parse_experience(items: List[Dict]) -> List[ExperienceEntry]:
    results: List[ExperienceEntry] = []
    for item in items:
        entry = parse_experience_item(item_lines(item, SECTION.title), item.get("img"))
        if entry is not None and entry.title:
            results.append(entry)
    return results


async def extract_experience(page: Page, settings: ScraperSettings) -> List[ExperienceEntry]:
    logger.info("Extracting experience...")
    items, strat = await read_section(page, SECTION, "experience", settings)
    experience = parse_experience(items)
    logger.info("Extracted %d experience entries (%s)", len(experience), strat)
    await snapshot_if_empty(page, "experience", experience, settings)
    return experience
