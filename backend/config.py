"""
Configuration for the CosmoDance info backend
Reads settings from environment variables (and a local .env file)
"""
import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

load_dotenv()


DEFAULT_BRANCHES: List[Dict[str, Any]] = [
    {"name": "Дыбенко", "aliases": ["дыбенко", "дыбенк", "dybenko"]},
    {"name": "Купчино", "aliases": ["купчино", "купчин", "kupchino"]},
    {"name": "Звёздная", "aliases": ["звездная", "звездн", "zvezdnaya"]},
    {"name": "Озерки", "aliases": ["озерки", "озерк", "ozerki"]},
]

# Groups that are not suitable for newcomers. Each keyword is a word stem
# matched at the start of a word.
DEFAULT_EXCLUSION_KEYWORDS: List[str] = [
    "продолжающ",
    "pro",
    "профи",
    "команд",
    "состав",
    "отбор",
    "advanced",
    "выступлен",
]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass
class BranchConfig:
    """A studio location and the substrings that identify it in free text"""
    name: str
    aliases: List[str]


@dataclass
class EngineConfig:
    """Settings for the schedule & price acquisition engine"""
    base_url: str = "https://cosmo.su"
    schedule_path: str = "/raspisanie/"
    prices_path: str = "/prices/"
    ttl_seconds: float = 2 * 60 * 60
    timeout_seconds: float = 15.0
    user_agent: str = DEFAULT_USER_AGENT
    branches: List[BranchConfig] = field(
        default_factory=lambda: [BranchConfig(**b) for b in DEFAULT_BRANCHES]
    )
    exclusion_keywords: List[str] = field(
        default_factory=lambda: list(DEFAULT_EXCLUSION_KEYWORDS)
    )
    max_entries_per_branch: int = 8
    max_unstructured_per_branch: int = 15
    max_entries_per_category: int = 10

    @property
    def schedule_url(self) -> str:
        return self.base_url.rstrip("/") + self.schedule_path

    @property
    def prices_url(self) -> str:
        return self.base_url.rstrip("/") + self.prices_path


@dataclass
class APIConfig:
    """Configuration for the chat-completion backend"""
    openai_api_key: str
    openai_model: str = "gpt-4o-mini"
    temperature: float = 0.3


@dataclass
class AppConfig:
    """HTTP server configuration"""
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    prefetch_on_startup: bool = True
    log_level: str = "INFO"
    log_dir: Optional[str] = None


def _load_branches(raw: Optional[str]) -> List[BranchConfig]:
    if not raw:
        return [BranchConfig(**b) for b in DEFAULT_BRANCHES]
    data = json.loads(raw)
    return [
        BranchConfig(name=item["name"], aliases=[a.lower() for a in item.get("aliases", [])])
        for item in data
    ]


def _load_keywords(raw: Optional[str]) -> List[str]:
    if not raw:
        return list(DEFAULT_EXCLUSION_KEYWORDS)
    return [k.strip().lower() for k in raw.split(",") if k.strip()]


class ConfigManager:
    """Centralized configuration management"""

    def __init__(self):
        self._engine_config = None
        self._api_config = None
        self._app_config = None

    @property
    def engine(self) -> EngineConfig:
        """Get engine configuration"""
        if self._engine_config is None:
            self._engine_config = EngineConfig(
                base_url=os.getenv("STUDIO_BASE_URL", "https://cosmo.su"),
                schedule_path=os.getenv("SCHEDULE_PATH", "/raspisanie/"),
                prices_path=os.getenv("PRICES_PATH", "/prices/"),
                ttl_seconds=float(os.getenv("CACHE_TTL_SECONDS", str(2 * 60 * 60))),
                timeout_seconds=float(os.getenv("REQUEST_TIMEOUT_SECONDS", "15")),
                user_agent=os.getenv("USER_AGENT", DEFAULT_USER_AGENT),
                branches=_load_branches(os.getenv("STUDIO_BRANCHES")),
                exclusion_keywords=_load_keywords(os.getenv("EXCLUSION_KEYWORDS")),
                max_entries_per_branch=int(os.getenv("MAX_ENTRIES_PER_BRANCH", "8")),
                max_unstructured_per_branch=int(os.getenv("MAX_UNSTRUCTURED_PER_BRANCH", "15")),
                max_entries_per_category=int(os.getenv("MAX_ENTRIES_PER_CATEGORY", "10")),
            )
        return self._engine_config

    @property
    def api(self) -> APIConfig:
        """Get chat API configuration"""
        if self._api_config is None:
            self._api_config = APIConfig(
                openai_api_key=os.getenv("OPENAI_API_KEY", ""),
                openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
                temperature=float(os.getenv("OPENAI_TEMPERATURE", "0.3")),
            )
        return self._api_config

    @property
    def app(self) -> AppConfig:
        """Get application configuration"""
        if self._app_config is None:
            origins = os.getenv("CORS_ORIGINS", "*")
            self._app_config = AppConfig(
                host=os.getenv("HOST", "0.0.0.0"),
                port=int(os.getenv("PORT", "8000")),
                cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
                prefetch_on_startup=_env_bool("PREFETCH_ON_STARTUP", "true"),
                log_level=os.getenv("LOG_LEVEL", "INFO"),
                log_dir=os.getenv("LOG_DIR") or None,
            )
        return self._app_config

    def validate_config(self) -> Dict[str, Any]:
        """Validate configuration and return any issues"""
        issues = []

        if not self.api.openai_api_key:
            issues.append("OPENAI_API_KEY is not set (chat endpoint disabled)")
        if self.engine.ttl_seconds <= 0:
            issues.append("CACHE_TTL_SECONDS must be positive")
        if self.engine.timeout_seconds <= 0:
            issues.append("REQUEST_TIMEOUT_SECONDS must be positive")
        if not self.engine.branches:
            issues.append("STUDIO_BRANCHES is empty")

        return {
            "valid": len(issues) == 0,
            "issues": issues,
            "config_summary": {
                "engine": {
                    "schedule_url": self.engine.schedule_url,
                    "prices_url": self.engine.prices_url,
                    "ttl_seconds": self.engine.ttl_seconds,
                    "timeout_seconds": self.engine.timeout_seconds,
                    "branches": [b.name for b in self.engine.branches],
                },
                "api": {
                    "openai_model": self.api.openai_model,
                    "has_openai_key": bool(self.api.openai_api_key),
                },
            },
        }


# Global configuration instance
config = ConfigManager()


def get_config() -> ConfigManager:
    """Get the global configuration instance"""
    return config
