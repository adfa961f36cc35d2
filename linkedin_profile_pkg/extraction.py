import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

logger = logging.getLogger(__name__)

BOILERPLATE = ("Show more", "Show less", "Show all", "see more", "…see more")
DESCRIPTION_MIN_LENGTH = 60

MONTH = r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?"
YEAR = re.compile(r"\b(?:19|20)\d{2}\b")

# Detail-page list items across the SDUI and legacy layouts
ITEM_SELECTOR = (
    "li.pvs-list__paged-list-item, li.artdeco-list__item, .pvs-list > li, "
    "div[componentkey^='entity-collection-item']"
)


@dataclass(frozen=True)
class LineClassifier:
    """Match one rendered text line to a record field.

    `transform` turns the matched line into the stored value (for example
    stripping an "Issued" prefix). A classifier either claims the line with
    its confidence or returns None.
    """
    field: str
    pattern: re.Pattern
    confidence: float = 1.0
    transform: Optional[Callable[[str, re.Match], str]] = None
    max_length: Optional[int] = None

    def match(self, line: str) -> Optional[Tuple[str, float, str]]:
        if self.max_length is not None and len(line) > self.max_length:
            return None
        m = self.pattern.search(line)
        if not m:
            return None
        value = self.transform(line, m) if self.transform else line.strip()
        return self.field, self.confidence, value.strip()


def _after_prefix(line: str, m: re.Match) -> str:
    return line[m.end():].strip(" :·-")


DATE_RANGE = re.compile(
    rf"(?:{MONTH}\s?\d{{4}}|\b\d{{4}}\b)\s*[-–]\s*(?:{MONTH}\s?\d{{4}}|\b\d{{4}}\b|Present)"
    rf"|{MONTH}\s?\d{{4}}\s*·\s*\d+\s?(?:yrs?|mos?)\b",
    re.I,
)

# Priority: issued > credential-id > expiration > bare-year fallback
CERTIFICATION_CLASSIFIERS: Tuple[LineClassifier, ...] = (
    LineClassifier("issue_date", re.compile(r"^\s*issued\b\s*:?", re.I), 0.95, _after_prefix),
    LineClassifier("credential_id", re.compile(r"^\s*credential\s*id\b\s*:?", re.I), 0.95, _after_prefix),
    LineClassifier("expiration_date", re.compile(r"expir", re.I), 0.9),
    LineClassifier("issue_date", YEAR, 0.4, max_length=40),
)

EDUCATION_CLASSIFIERS: Tuple[LineClassifier, ...] = (
    LineClassifier("dates", re.compile(r"\b\d{4}\b.*[-–]|^\D{0,10}\b\d{4}\b\D{0,4}$"), 0.9, max_length=40),
    LineClassifier("grade", re.compile(r"\b(grade|cgpa|gpa|percentage|score)\b", re.I), 0.9),
    LineClassifier("activities", re.compile(r"activit|societ|club|sport", re.I), 0.7, max_length=150),
)

EXPERIENCE_CLASSIFIERS: Tuple[LineClassifier, ...] = (
    LineClassifier("date_range", DATE_RANGE, 0.9),
    LineClassifier(
        "location",
        re.compile(r"^[A-Z][\w .'-]+(?:,\s*[A-Z][\w .'-]+)+(?:\s*·\s*(?:On-site|Remote|Hybrid))?$|^(?:Remote|Hybrid|On-site)$"),
        0.6,
        max_length=80,
    ),
)

PROJECT_CLASSIFIERS: Tuple[LineClassifier, ...] = (
    LineClassifier("date_range", re.compile(rf"{MONTH}\s?\d{{4}}|Present", re.I), 0.9, max_length=60),
)

SKILL_CLASSIFIERS: Tuple[LineClassifier, ...] = (
    LineClassifier("endorsements", re.compile(r"^\s*(\d+\+?)\s+endorsements?\b", re.I), 0.9,
                   lambda line, m: m.group(1)),
)


def split_lines(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return [line.strip() for line in text.split("\n") if line.strip()]


def strip_boilerplate(lines: Iterable[str], extra: Sequence[str] = ()) -> List[str]:
    """Drop expander labels and the section title from rendered lines."""
    noise = {s.lower() for s in BOILERPLATE} | {s.lower() for s in extra if s}
    return [line for line in lines if line.lower() not in noise]


def dedupe_lines(lines: Iterable[str]) -> List[str]:
    """Collapse consecutive repeats; visually-hidden spans double every line."""
    out: List[str] = []
    for line in lines:
        if not out or out[-1] != line:
            out.append(line)
    return out


def classify_lines(
    lines: Sequence[str],
    classifiers: Sequence[LineClassifier],
    description_min_length: int = DESCRIPTION_MIN_LENGTH,
) -> Tuple[Dict[str, str], List[str]]:
    """Assign lines to fields in classifier priority order.

    Each classifier claims the first unclaimed line it matches, so a
    higher-priority classifier wins regardless of line order. A field that
    already has a value is not overwritten and the line falls through to
    lower-priority classifiers. Long unmatched lines are joined into
    "description"; short unmatched lines are returned as leftovers.
    """
    fields: Dict[str, str] = {}
    claimed = set()
    for classifier in classifiers:
        if classifier.field in fields:
            continue
        for idx, line in enumerate(lines):
            if idx in claimed:
                continue
            hit = classifier.match(line)
            if hit is None:
                continue
            field, _confidence, value = hit
            fields[field] = value
            claimed.add(idx)
            break

    leftovers: List[str] = []
    descriptions: List[str] = []
    for idx, line in enumerate(lines):
        if idx in claimed:
            continue
        if len(line) >= description_min_length:
            descriptions.append(line)
        else:
            leftovers.append(line)
    if descriptions:
        fields["description"] = "\n".join(descriptions)
    return fields, leftovers


def dedupe_title_org(title: Optional[str], org: Optional[str]) -> Optional[str]:
    """Return org, or None when it only repeats the title."""
    if title and org and title.strip() == org.strip():
        return None
    return org


def find_range_index(lines: Sequence[str]) -> int:
    for idx, line in enumerate(lines):
        if DATE_RANGE.search(line):
            return idx
    return -1


async def collect_item_texts(
    container: Page | Locator,
    item_selector: str = ITEM_SELECTOR,
) -> List[Dict[str, Optional[str]]]:
    """Read every item's rendered text plus its first image and link.

    One evaluate round-trip per container keeps concurrent tabs cheap.
    Returns [] when the container cannot be read.
    """
    script = """(root, sel) => {
        return Array.from(root.querySelectorAll(sel)).map((item) => ({
            text: item.innerText || '',
            aria: Array.from(item.querySelectorAll('span[aria-hidden="true"]'))
                .map((s) => (s.innerText || '').trim()).filter(Boolean),
            img: item.querySelector('img')?.src || null,
            link: item.querySelector('a[href]')?.href || null,
        }));
    }"""
    try:
        if isinstance(container, Locator):
            return await container.evaluate(script, item_selector)
        return await container.evaluate(f"(sel) => ({script})(document, sel)", item_selector)
    except PlaywrightError as e:
        logger.debug("Item collection failed: %s", str(e)[:80])
        return []


def item_lines(item: Dict, title: str = "") -> List[str]:
    """Prefer aria-hidden spans (one clean copy of each line), else innerText."""
    lines = item.get("aria") or split_lines(item.get("text"))
    return dedupe_lines(strip_boilerplate(lines, extra=[title]))
