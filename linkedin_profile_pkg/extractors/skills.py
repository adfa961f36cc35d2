import logging
import re
from typing import Dict, List

from playwright.async_api import Page

from ..config import ScraperSettings
from ..extraction import SKILL_CLASSIFIERS, classify_lines, item_lines
from ..models import SkillEntry
from ..selectors import SectionSelectors
from .common import read_section, snapshot_if_empty

logger = logging.getLogger(__name__)

SECTION = SectionSelectors(
    title="Skills",
    sdui="[data-view-name='profile-card-skills']",
    legacy="#skills",
)

# SDUI uses role=listitem divs instead of li in many places
SKILL_ITEMS = "li, div[role='listitem']"

_NOT_A_SKILL = re.compile(r"^\d+$|Endorsed|Show all|endorsement", re.I)


def parse_skills(items: List[Dict]) -> List[SkillEntry]:
    """First line of each item is the skill; endorsement counts come from the rest."""
    results: List[SkillEntry] = []
    seen = set()
    for item in items:
        lines = item_lines(item, SECTION.title)
        if not lines:
            continue
        name = lines[0]
        if len(name) < 2 or _NOT_A_SKILL.search(name) or name in seen:
            continue
        seen.add(name)
        fields, _ = classify_lines(lines[1:], SKILL_CLASSIFIERS)
        results.append(SkillEntry(name=name, endorsements=fields.get("endorsements")))
    return results


async def extract_skills(page: Page, settings: ScraperSettings) -> List[SkillEntry]:
    logger.info("Extracting skills...")
    items, strat = await read_section(page, SECTION, "skills", settings, item_selector=SKILL_ITEMS)
    skills = parse_skills(items)
    logger.info("Extracted %d skills (%s)", len(skills), strat)
    await snapshot_if_empty(page, "skills", skills, settings)
    return skills
