# app/core/slugs.py
"""
Slug generation shared by every product create/update path.

    slugify("Café Crème Léggings!!")  -> "cafe-creme-leggings"

`resolve_unique_slug` only pre-checks against the catalog. The unique index
on products.slug is the final authority; callers catch the IntegrityError
and retry once with `random_slug_suffix`.
"""
import logging
import re
import unicodedata
import uuid
from typing import Any, Callable

logger = logging.getLogger(__name__)

SLUG_SEPARATOR = "-"
DEFAULT_MAX_ATTEMPTS = 1000

# products.slug is VARCHAR(255); a capped base leaves room for "-<8 hex>".
MAX_SLUG_LENGTH = 255
MAX_BASE_LENGTH = 240

_INVALID_RUN = re.compile(r"[^a-z0-9]+")

# (candidate, exclude_id) -> True if another record already uses candidate
ExistsCheck = Callable[[str, Any], bool]


class SlugExhaustedError(RuntimeError):
    """Raised by strict resolution when no free `base-N` slug was found."""


def slugify(text: str | None) -> str:
    """
    Basic slugification:
      - lowercase
      - decompose and drop diacritical marks
      - non-alphanumeric runs -> '-'
      - strip leading/trailing '-'

    Returns "" when nothing usable remains.
    """
    if not text:
        return ""
    value = unicodedata.normalize("NFKD", str(text)).lower()
    value = "".join(ch for ch in value if not unicodedata.combining(ch))
    value = _INVALID_RUN.sub(SLUG_SEPARATOR, value)
    return value.strip(SLUG_SEPARATOR)


def _short_token() -> str:
    return uuid.uuid4().hex[-8:]


def base_slug(text: str | None) -> str:
    """
    slugify(), cut to MAX_BASE_LENGTH, falling back to an opaque token so
    slugs are never empty.
    """
    value = slugify(text)[:MAX_BASE_LENGTH].rstrip(SLUG_SEPARATOR)
    return value or _short_token()


def random_slug_suffix(text: str | None) -> str:
    """Candidate used after a uniqueness violation at insert time."""
    return f"{base_slug(text)}{SLUG_SEPARATOR}{_short_token()}"


def resolve_unique_slug(
    base_text: str | None,
    exists: ExistsCheck,
    exclude_id: Any = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    strict: bool = False,
) -> str:
    """
    Ensure slug is unique by appending -1, -2, ... if needed.

    Args:
        base_text: title, SKU or explicit slug to derive from.
        exists: catalog lookup, called as exists(candidate, exclude_id).
        exclude_id: record being re-slugged, so it does not collide with itself.
        max_attempts: numbered candidates to try before giving up.
        strict: raise SlugExhaustedError instead of falling back to a
            random suffix (maintenance tooling wants the run to halt).
    """
    base = base_slug(base_text)
    candidate = base
    counter = 0

    while exists(candidate, exclude_id):
        counter += 1
        if counter > max_attempts:
            if strict:
                raise SlugExhaustedError(
                    f"Could not generate unique slug for {base!r} "
                    f"after {max_attempts} attempts"
                )
            candidate = f"{base}{SLUG_SEPARATOR}{_short_token()}"
            logger.warning(
                "Slug space exhausted for %r, using random suffix %r", base, candidate
            )
            return candidate
        candidate = f"{base}{SLUG_SEPARATOR}{counter}"

    return candidate
