"""
Branch alias table and resolver.
Maps free-text fragments (scraped lines, user queries) to studio branches.
"""
import unicodedata
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from config import BranchConfig, get_config


def normalize(text: str) -> str:
    """Case-fold and strip diacritics so that 'Звёздная' == 'звездная'"""
    decomposed = unicodedata.normalize("NFKD", text.casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


@dataclass(frozen=True)
class Branch:
    name: str
    aliases: Tuple[str, ...]


class BranchResolver:
    """First-match substring resolver over the configured branches"""

    def __init__(self, branches: Optional[Iterable[BranchConfig]] = None):
        if branches is None:
            branches = get_config().engine.branches
        self.branches: List[Branch] = []
        self._patterns: List[Tuple[Branch, Tuple[str, ...]]] = []
        for cfg in branches:
            # The canonical name always counts as an alias
            aliases = tuple(dict.fromkeys([cfg.name.lower(), *(a.lower() for a in cfg.aliases)]))
            branch = Branch(name=cfg.name, aliases=aliases)
            self.branches.append(branch)
            self._patterns.append((branch, tuple(normalize(a) for a in aliases if a)))

    @property
    def names(self) -> List[str]:
        return [b.name for b in self.branches]

    def resolve(self, text: Optional[str]) -> Optional[Branch]:
        """Return the first configured branch whose alias occurs in text"""
        if not text:
            return None
        haystack = normalize(text)
        for branch, aliases in self._patterns:
            if any(alias in haystack for alias in aliases):
                return branch
        return None
