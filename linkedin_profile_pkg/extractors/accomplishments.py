import logging
from typing import Dict, List

from playwright.async_api import Page
from pydantic import BaseModel

from ..config import ScraperSettings
from ..extraction import item_lines
from ..models import (
    Accomplishments,
    CourseEntry,
    HonorEntry,
    LanguageEntry,
    OrganizationEntry,
    PublicationEntry,
    VolunteerEntry,
)
from ..selectors import SectionSelectors
from .common import read_section

logger = logging.getLogger(__name__)

SECTIONS: Dict[str, SectionSelectors] = {
    "languages": SectionSelectors(
        title="Languages",
        sdui="[data-view-name='profile-card-languages']",
        legacy="#languages",
    ),
    "honors": SectionSelectors(
        title="Honors & awards",
        sdui="[data-view-name='profile-card-honors']",
        legacy="#honors_and_awards, #honors",
    ),
    "publications": SectionSelectors(
        title="Publications",
        sdui="[data-view-name='profile-card-publications']",
        legacy="#publications",
    ),
    "volunteer": SectionSelectors(
        title="Volunteering",
        sdui="[data-view-name='profile-card-volunteering-experience']",
        legacy="#volunteering_experience, #volunteer_experience",
    ),
    "courses": SectionSelectors(
        title="Courses",
        sdui="[data-view-name='profile-card-courses']",
        legacy="#courses",
    ),
    "organizations": SectionSelectors(
        title="Organizations",
        sdui="[data-view-name='profile-card-organizations']",
        legacy="#organizations",
    ),
}

ACCOMPLISHMENT_ITEMS = "li.artdeco-list__item, li.pvs-list__paged-list-item, ul.pvs-list > li"


def _at(texts: List[str], idx: int):
    return texts[idx] if len(texts) > idx else None


def build_accomplishment(kind: str, texts: List[str]) -> BaseModel:
    """Map an item's lines onto the record for its section, by position."""
    if kind == "languages":
        return LanguageEntry(name=texts[0], proficiency=_at(texts, 1))
    if kind == "honors":
        return HonorEntry(
            title=texts[0],
            issuer=_at(texts, 1),
            date=_at(texts, 2),
            description=" ".join(texts[3:]) or None,
        )
    if kind == "publications":
        return PublicationEntry(title=texts[0], publisher=_at(texts, 1), date=_at(texts, 2))
    if kind == "volunteer":
        return VolunteerEntry(role=texts[0], organization=_at(texts, 1), dates=_at(texts, 2))
    if kind == "courses":
        return CourseEntry(name=texts[0], number=_at(texts, 1))
    if kind == "organizations":
        return OrganizationEntry(name=texts[0], position=_at(texts, 1), dates=_at(texts, 2))
    raise ValueError(f"Unknown accomplishment section: {kind}")


def parse_accomplishment_items(kind: str, items: List[Dict]) -> List[BaseModel]:
    title = SECTIONS[kind].title
    results = []
    for item in items:
        texts = item_lines(item, title)
        if texts:
            results.append(build_accomplishment(kind, texts))
    return results


async def extract_accomplishments(page: Page, settings: ScraperSettings) -> Accomplishments:
    """Read every accomplishment section present on the profile page.

    A section that is missing is simply left empty. `read_section` sends
    the tab back to the profile after following a "Show all" link.
    """
    logger.info("Extracting accomplishments...")
    result = Accomplishments()
    for kind, selectors in SECTIONS.items():
        items, strat = await read_section(
            page, selectors, kind, settings, item_selector=ACCOMPLISHMENT_ITEMS
        )
        if strat == "NotFound":
            continue
        setattr(result, kind, parse_accomplishment_items(kind, items))
        logger.debug("%s: %d items (%s)", kind, len(getattr(result, kind)), strat)

    logger.info("Extracted %d accomplishments", result.total())
    return result
