from .base import ListingSource, PlatformQuery
from .indeed import IndeedSource
from .internshala import InternshalaPlaceholderSource
from .jsearch import JSearchSource
from .remotive import RemotiveSource

from internpilot.config import get_env
from internpilot.log import get_logger

log = get_logger(__name__)

__all__ = [
    "ListingSource", "PlatformQuery", "IndeedSource", "InternshalaPlaceholderSource",
    "JSearchSource", "RemotiveSource", "SOURCE_TYPES", "get_sources",
]

SOURCE_TYPES: dict[str, type[ListingSource]] = {
    "indeed": IndeedSource,
    "jsearch": JSearchSource,
    "remotive": RemotiveSource,
    "internshala": InternshalaPlaceholderSource,
}


def get_sources(platforms: list[str], env_getter=get_env) -> list[ListingSource]:
    """Instantiate one source per known platform name, in request order.

    Unknown names are logged and skipped; duplicates collapse to one source.
    """
    sources: list[ListingSource] = []
    seen: set[str] = set()
    for name in platforms:
        key = str(name).strip().lower()
        source_type = SOURCE_TYPES.get(key)
        if source_type is None:
            log.warning("Unknown platform %r — ignored", name)
            continue
        if key in seen:
            continue
        seen.add(key)
        sources.append(source_type(env_getter))
        log.info("Registered source: %s", source_type.name)
    return sources
