from __future__ import annotations

ALLOWED_CATEGORIES: tuple[str, ...] = (
    "Web Development",
    "Web Design",
    "Mobile Apps",
    "Graphic Design",
    "Digital Marketing",
    "Content Writing",
    "Video & Animation",
    "Business Consulting",
)

_BY_KEY = {label.casefold(): label for label in ALLOWED_CATEGORIES}


def normalize_category(value: str | None) -> str | None:
    """Return the canonical label matching `value` case-insensitively, or None."""
    if not value:
        return None
    return _BY_KEY.get(" ".join(str(value).split()).casefold())


def allowed_categories_text() -> str:
    return ", ".join(ALLOWED_CATEGORIES)
