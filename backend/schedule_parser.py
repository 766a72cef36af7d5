"""
Schedule extraction strategies for the studio's timetable page.
Three independent heuristics, tried by the cascade in this order:
tables, repeated container blocks, free-text lines.
"""
import re
from functools import partial
from typing import Dict, List, Optional, Tuple

from bs4 import Tag

from branches import Branch, BranchResolver
from extraction import (
    Strategy,
    StrategyOutcome,
    append_unique,
    extract_text,
    has_time,
    is_schedule_like,
    looks_like_markup,
    make_soup,
    outcome,
    visible_lines,
    MIN_LINE_LENGTH,
)

STRUCTURED = "structured"
SEMI_STRUCTURED = "semi_structured"
UNSTRUCTURED = "unstructured"

HEADING_SELECTOR = re.compile(r"^h[1-4]$")

BLOCK_CONTAINER = '.schedule-container, .raspisanie-block, div[class*="schedule"]'
BLOCK_ITEM = ".schedule-item, .group-item, .lesson"
BLOCK_TIME = ".time, .schedule-time"
BLOCK_NAME = ".name, .group-name, .title"
BLOCK_DAY = ".day, .weekday"

# A branch heading line in plain text is short, e.g. "Филиал Купчино"
MAX_HEADING_LINE = 60

# Day sub-headings inside a branch section, e.g. "Понедельник" or "Пн, Ср"
DAY_LABEL = re.compile(
    r"^(?:(?:пн|вт|ср|чт|пт|сб|вс|понедельник|вторник|среда|четверг|пятница|суббота|воскресенье)\b[\s,.\-]*)+$",
    re.I,
)


def _table_heading(table: Tag) -> str:
    caption = table.find("caption")
    if caption:
        text = extract_text(caption)
        if text:
            return text
    heading = table.find_previous(
        lambda t: isinstance(t, Tag)
        and (bool(HEADING_SELECTOR.match(t.name or "")) or "branch-title" in (t.get("class") or []))
    )
    return extract_text(heading) if heading else ""


def extract_from_tables(html: str, resolver: BranchResolver) -> StrategyOutcome:
    """Rows of <table> elements: first cell is the time, second the group"""
    soup = make_soup(html)
    schedule: Dict[str, List[str]] = {}

    for table in soup.find_all("table"):
        table_branch = resolver.resolve(_table_heading(table))
        table_text: Optional[str] = None

        for row in table.find_all("tr"):
            cells = [extract_text(c) for c in row.find_all(["td", "th"])]
            cells = [c for c in cells if c]
            if len(cells) < 2:
                continue
            entry = f"{cells[0]} {cells[1]}"
            if not is_schedule_like(entry):
                continue

            branch = table_branch or resolver.resolve(extract_text(row))
            if branch is None:
                if table_text is None:
                    table_text = extract_text(table)
                branch = resolver.resolve(table_text)
            if branch is not None:
                append_unique(schedule, branch.name, entry)

    return outcome(STRUCTURED, schedule)


def _field(item: Tag, selector: str) -> str:
    el = item.select_one(selector)
    return extract_text(el) if el else ""


def extract_from_blocks(html: str, resolver: BranchResolver) -> StrategyOutcome:
    """Repeated container blocks with .time / .name / .day sub-fields"""
    soup = make_soup(html)
    schedule: Dict[str, List[str]] = {}
    seen = set()

    for container in soup.select(BLOCK_CONTAINER):
        container_branch: Optional[Branch] = None
        container_resolved = False

        for item in container.select(BLOCK_ITEM):
            if id(item) in seen:
                continue
            seen.add(id(item))

            parts = [_field(item, BLOCK_TIME), _field(item, BLOCK_NAME), _field(item, BLOCK_DAY)]
            entry = " ".join(p for p in parts if p)
            if not is_schedule_like(entry):
                continue

            branch = resolver.resolve(extract_text(item))
            if branch is None:
                if not container_resolved:
                    container_branch = resolver.resolve(extract_text(container))
                    container_resolved = True
                branch = container_branch
            if branch is not None:
                append_unique(schedule, branch.name, entry)

    return outcome(SEMI_STRUCTURED, schedule)


def extract_from_text(html: str, resolver: BranchResolver, max_per_branch: int = 15) -> StrategyOutcome:
    """Line scan over the visible page text.

    Lines naming a branch attribute themselves; otherwise the last short
    branch heading line seen above them is used. Any other short heading-like
    line (e.g. "Контакты") ends that branch section.
    """
    soup = make_soup(html)
    schedule: Dict[str, List[str]] = {}
    current: Optional[Branch] = None

    for line in visible_lines(soup):
        if looks_like_markup(line):
            continue

        branch = resolver.resolve(line)
        schedule_like = is_schedule_like(line)

        if branch is not None and not schedule_like and len(line) <= MAX_HEADING_LINE:
            current = branch
            continue
        if branch is None and not has_time(line) and len(line) <= MAX_HEADING_LINE:
            if not DAY_LABEL.match(line):
                current = None
            continue
        if len(line) < MIN_LINE_LENGTH or not schedule_like:
            continue

        target = branch or current
        if target is not None:
            append_unique(schedule, target.name, line, limit=max_per_branch)

    return outcome(UNSTRUCTURED, schedule)


def schedule_strategies(resolver: BranchResolver, max_unstructured_per_branch: int = 15) -> List[Tuple[str, Strategy]]:
    """Cascade order: structured, semi-structured, unstructured"""
    return [
        (STRUCTURED, partial(extract_from_tables, resolver=resolver)),
        (SEMI_STRUCTURED, partial(extract_from_blocks, resolver=resolver)),
        (
            UNSTRUCTURED,
            partial(extract_from_text, resolver=resolver, max_per_branch=max_unstructured_per_branch),
        ),
    ]
