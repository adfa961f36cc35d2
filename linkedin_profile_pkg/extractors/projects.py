import logging
from typing import Dict, List

from playwright.async_api import Page

from ..config import ScraperSettings
from ..extraction import PROJECT_CLASSIFIERS, classify_lines, item_lines
from ..models import ProjectEntry
from ..selectors import SectionSelectors
from .common import read_section

logger = logging.getLogger(__name__)

SECTION = SectionSelectors(
    title="Projects",
    sdui="[data-view-name='profile-card-projects']",
    legacy="#projects",
)

PROJECT_ITEMS = (
    "li.pvs-list__paged-list-item, li.artdeco-list__item, div[role='listitem'], "
    ".pvs-list__container > div, div[componentkey^='entity-collection-item']"
)


def parse_projects(items: List[Dict]) -> List[ProjectEntry]:
    """Project name first, then an optional date range, then free text."""
    results: List[ProjectEntry] = []
    for item in items:
        lines = item_lines(item, SECTION.title)
        if not lines:
            continue
        entry = ProjectEntry(title=lines[0], link=item.get("link"))
        if len(lines) > 1:
            fields, _ = classify_lines(lines[1:2], PROJECT_CLASSIFIERS)
            entry.date_range = fields.get("date_range")
            body = lines[2:] if entry.date_range else lines[1:]
            entry.description = "\n".join(body) or None
        results.append(entry)
    return results


async def extract_projects(page: Page, settings: ScraperSettings) -> List[ProjectEntry]:
    logger.info("Extracting projects from detail page...")
    items, strat = await read_section(page, SECTION, "projects", settings, item_selector=PROJECT_ITEMS)
    projects = parse_projects(items)
    logger.info("Extracted %d projects (%s)", len(projects), strat)
    return projects
