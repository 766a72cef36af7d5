"""
Shared extraction policy and the strategy cascade.

A strategy is a plain function ``(html) -> StrategyOutcome``. The cascade runs
strategies in a fixed order and accepts the first non-empty result.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence, Tuple, Union

from bs4 import BeautifulSoup

from errors import ExtractionExhausted

logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r"\b\d{1,2}[:.]\d{2}\b")
MIN_LINE_LENGTH = 10
MAX_LINE_LENGTH = 200

_MARKUP_PATTERN = re.compile(
    r"</?[a-z][^>]*>|\{.*\}|function\s*\(|=>|\bvar\s+\w+\s*=|\bconst\s+\w+\s*=|window\.|document\.",
    re.I,
)


@dataclass
class Entries:
    strategy: str
    mapping: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class Empty:
    strategy: str
    reason: str = "no matches"


StrategyOutcome = Union[Entries, Empty]
Strategy = Callable[[str], StrategyOutcome]


def make_soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


def extract_text(el) -> str:
    text = el.get_text(separator=" ", strip=True) if el else ""
    # Collapse excessive whitespace
    return re.sub(r"\s+", " ", text).strip()


def visible_lines(soup: BeautifulSoup) -> List[str]:
    """Split the page's visible text into whitespace-collapsed lines"""
    for tag in soup(["script", "style", "noscript", "template"]):
        tag.decompose()
    body = soup.body or soup
    lines = []
    for raw in body.get_text(separator="\n").split("\n"):
        line = re.sub(r"\s+", " ", raw).strip()
        if line:
            lines.append(line)
    return lines


def looks_like_markup(line: str) -> bool:
    return bool(_MARKUP_PATTERN.search(line))


def has_time(text: str) -> bool:
    return bool(TIME_PATTERN.search(text))


def is_schedule_like(text: str) -> bool:
    """A schedule line carries a HH:MM / HH.MM time and is a short phrase"""
    return MIN_LINE_LENGTH <= len(text) <= MAX_LINE_LENGTH and has_time(text)


def append_unique(mapping: Dict[str, List[str]], key: str, entry: str, limit: int = 0) -> bool:
    items = mapping.setdefault(key, [])
    if entry in items or (limit and len(items) >= limit):
        return False
    items.append(entry)
    return True


def outcome(strategy: str, mapping: Dict[str, List[str]]) -> StrategyOutcome:
    mapping = {key: items for key, items in mapping.items() if items}
    if not mapping:
        return Empty(strategy)
    return Entries(strategy, mapping)


def run_cascade(html: str, strategies: Sequence[Tuple[str, Strategy]]) -> Entries:
    """Run strategies in order and return the first non-empty result.

    A strategy that raises counts as empty. Raises ExtractionExhausted when
    nothing produced entries.
    """
    attempted = []
    for name, strategy in strategies:
        attempted.append(name)
        try:
            result = strategy(html)
        except Exception:
            logger.warning("Strategy %s crashed, trying the next one", name, exc_info=True)
            continue

        if isinstance(result, Entries) and any(result.mapping.values()):
            logger.info(
                "Strategy %s matched %d keys: %s",
                name,
                len(result.mapping),
                ", ".join(result.mapping),
            )
            return result
        logger.debug("Strategy %s found nothing", name)

    raise ExtractionExhausted(attempted)
