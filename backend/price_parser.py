"""
Price extraction strategies for the studio's prices page.
Entries are keyed by category labels taken from headings on the page.
"""
import re
from functools import partial
from typing import Dict, List, Tuple

from bs4 import Tag

from extraction import (
    Strategy,
    StrategyOutcome,
    append_unique,
    extract_text,
    looks_like_markup,
    make_soup,
    outcome,
    visible_lines,
)

STRUCTURED = "structured"
SEMI_STRUCTURED = "semi_structured"
UNSTRUCTURED = "unstructured"

DEFAULT_CATEGORY = "Обнаруженные цены"
MAX_CATEGORY_LENGTH = 80
MIN_PRICE_LINE = 10
MAX_PRICE_LINE = 300
SECTION_SIBLINGS = 5

PRICE_KEYWORDS = ("цена", "цены", "стоимость", "абонемент", "прайс")
AMOUNT_PATTERN = re.compile(r"\d[\d\s]*\s*(?:₽|руб|р\.)|\bот\s*\d+", re.I)
TABLE_MARKERS = ("₽", "руб", "цена")


def has_amount(text: str) -> bool:
    return bool(AMOUNT_PATTERN.search(text))


def mentions_price(text: str) -> bool:
    lower = text.lower()
    return any(k in lower for k in PRICE_KEYWORDS)


def _category(text: str) -> str:
    return text[:MAX_CATEGORY_LENGTH].strip()


def _fits(text: str) -> bool:
    return MIN_PRICE_LINE <= len(text) <= MAX_PRICE_LINE


def extract_price_tables(html: str, max_per_category: int = 10) -> StrategyOutcome:
    """Tables that mention prices; one entry per row"""
    soup = make_soup(html)
    prices: Dict[str, List[str]] = {}

    for i, table in enumerate(soup.find_all("table"), start=1):
        lower = extract_text(table).lower()
        if not any(marker in lower for marker in TABLE_MARKERS):
            continue

        heading = table.find_previous(re.compile(r"^h[1-4]$"))
        label = _category(extract_text(heading)) if heading else ""
        label = label or f"Таблица цен {i}"

        for row in table.find_all("tr"):
            cells = [extract_text(c) for c in row.find_all(["td", "th"])]
            row_text = " ".join(c for c in cells if c)
            if len(row_text) > 5 and len(row_text) <= MAX_PRICE_LINE:
                append_unique(prices, label, row_text, limit=max_per_category)

    return outcome(STRUCTURED, prices)


def _section_texts(heading: Tag) -> List[str]:
    texts = []
    sib = heading.find_next_sibling()
    while sib is not None and len(texts) < SECTION_SIBLINGS:
        if re.match(r"^h[1-4]$", sib.name or ""):
            break
        text = extract_text(sib)
        if _fits(text):
            texts.append(text)
        sib = sib.find_next_sibling()
    return texts


def extract_price_sections(html: str, max_per_category: int = 10) -> StrategyOutcome:
    """Price headings followed by a handful of descriptive blocks"""
    soup = make_soup(html)
    prices: Dict[str, List[str]] = {}

    for heading in soup.find_all(["h1", "h2", "h3", "h4", "strong", "b"]):
        title = extract_text(heading)
        if not title or not mentions_price(title):
            continue
        label = _category(title)
        # Inline headings (<strong>, <b>) usually sit inside the paragraph that
        # carries the content
        anchor = heading if heading.name.startswith("h") else heading.parent
        for text in _section_texts(anchor):
            append_unique(prices, label, text, limit=max_per_category)

    return outcome(SEMI_STRUCTURED, prices)


def extract_price_lines(html: str, max_per_category: int = 10) -> StrategyOutcome:
    """Free-text lines carrying an amount, grouped under the last heading-like line"""
    soup = make_soup(html)
    prices: Dict[str, List[str]] = {}
    label = DEFAULT_CATEGORY

    for line in visible_lines(soup):
        if looks_like_markup(line):
            continue
        if has_amount(line):
            if _fits(line):
                append_unique(prices, label, line, limit=max_per_category)
        elif mentions_price(line) and len(line) <= MAX_CATEGORY_LENGTH:
            label = _category(line)

    return outcome(UNSTRUCTURED, prices)


def price_strategies(max_per_category: int = 10) -> List[Tuple[str, Strategy]]:
    """Cascade order: tables, heading sections, free-text lines"""
    return [
        (STRUCTURED, partial(extract_price_tables, max_per_category=max_per_category)),
        (SEMI_STRUCTURED, partial(extract_price_sections, max_per_category=max_per_category)),
        (UNSTRUCTURED, partial(extract_price_lines, max_per_category=max_per_category)),
    ]
