"""
Client view filter: turns a raw schedule snapshot into what a newcomer sees.
Drops advanced/team groups, strips internal annotations, caps each branch.
"""
import re
from typing import Dict, List, Optional, Sequence

from branches import BranchResolver
from models import Snapshot

# Applied in order until the text stops changing
ANNOTATION_PATTERNS = [
    (re.compile(r"\s*\d+\s*\+"), ""),  # age markers: 18+, 12 +
    (re.compile(r"\s*\(\s*\d+[^)]*\)"), ""),  # (12-16 лет), (7+)
    (re.compile(r"\s*\b\d{1,2}\s*[-–—]\s*\d{1,2}\s*лет\b", re.I), ""),  # 7-12 лет
    (re.compile(r"\s*\([^)]*продолж[^)]*\)", re.I), ""),  # level parentheticals
    (re.compile(r"\s*\([^)]*(?:продвинут|профи)[^)]*\)", re.I), ""),
    (re.compile(r"\d{1,2}[:.]\d{2}\s*[-–—]\s*\d{1,2}[:.]\d{2}"), ""),  # 18:00-19:00
    (re.compile(r"\s+"), " "),
]


def is_excluded(text: str, keywords: Sequence[str]) -> bool:
    """Keywords are word stems: each must start a word ("pro" hits "PRO", not "Improvisation")"""
    lower = text.lower()
    return any(re.search(r"(?<!\w)" + re.escape(k), lower) for k in keywords if k)


def clean_entry(text: str) -> str:
    """Strip age/level/time annotations; stable under repeated application"""
    previous = None
    while previous != text:
        previous = text
        for pattern, replacement in ANNOTATION_PATTERNS:
            text = pattern.sub(replacement, text)
        text = text.strip()
    return text


def filter_entries(entries: List[str], keywords: Sequence[str], limit: int) -> List[str]:
    kept: List[str] = []
    for entry in entries:
        if is_excluded(entry, keywords):
            continue
        cleaned = clean_entry(entry)
        if not cleaned or is_excluded(cleaned, keywords) or cleaned in kept:
            continue
        kept.append(cleaned)
        if limit and len(kept) >= limit:
            break
    return kept


def to_client_view(
    snapshot: Snapshot,
    branch_filter: Optional[str],
    resolver: BranchResolver,
    exclusion_keywords: Sequence[str],
    max_entries: int = 8,
) -> Snapshot:
    """Consumer-safe projection of a schedule snapshot.

    An unknown branch_filter yields an empty mapping rather than an error.
    Applying the view to its own output returns the same output.
    """
    source = snapshot.entries
    if branch_filter:
        branch = resolver.resolve(branch_filter)
        if branch is None:
            return snapshot.with_entries({})
        source = {name: items for name, items in source.items() if name == branch.name}

    keywords = [k.lower() for k in exclusion_keywords]
    view: Dict[str, List[str]] = {}
    for name, items in source.items():
        kept = filter_entries(items, keywords, max_entries)
        if kept:
            view[name] = kept
    return snapshot.with_entries(view)
