import logging
import re
from typing import Callable

from inkwell.errors import BlogError, StorageUnavailable

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_title(title: str) -> str:
    """Lower-case, collapse non-alphanumeric runs into one hyphen, strip edge hyphens."""
    base = _NON_ALNUM.sub("-", (title or "").lower().strip())
    return base.strip("-")


def derive_unique_slug(title: str, exists_slug: Callable[[str], bool]) -> str:
    """
    Return the normalized slug for ``title``, or the first ``base-N`` suffix
    (N = 1, 2, ...) that ``exists_slug`` reports as free.

    A title without any alphanumeric characters normalizes to an empty base;
    the empty slug is never handed out, so such titles get ``-1``, ``-2``...
    """
    base = normalize_title(title)
    if base and not _slug_taken(base, exists_slug):
        return base

    count = 1
    candidate = f"{base}-{count}"
    while _slug_taken(candidate, exists_slug):
        count += 1
        candidate = f"{base}-{count}"
    return candidate


def _slug_taken(candidate: str, exists_slug: Callable[[str], bool]) -> bool:
    try:
        return bool(exists_slug(candidate))
    except BlogError:
        raise
    except Exception as e:
        logger.error(f"Slug existence check failed for '{candidate}': {e}")
        raise StorageUnavailable("Failed to generate slug") from e
