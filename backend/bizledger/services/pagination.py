# Overview: Page/limit handling shared by list endpoints.

from __future__ import annotations

from flask import current_app, has_app_context

from ..errors import ValidationFailed


def _limits() -> tuple[int, int]:
    if has_app_context():
        return (
            current_app.config.get("DEFAULT_PAGE_SIZE", 25),
            current_app.config.get("MAX_PAGE_SIZE", 200),
        )
    return 25, 200


def paginate(query, *, page: int | None = None, limit: int | None = None) -> dict:
    """
    Run a Flask-SQLAlchemy query one page at a time.

    Returns {"items": [...models...], "page", "limit", "total", "pages"}; the
    caller serializes items.
    """
    default_limit, max_limit = _limits()
    page = page or 1
    limit = limit or default_limit
    if page < 1:
        raise ValidationFailed("page must be >= 1")
    if limit < 1:
        raise ValidationFailed("limit must be >= 1")
    limit = min(limit, max_limit)

    result = query.paginate(page=page, per_page=limit, error_out=False)
    return {
        "items": result.items,
        "page": page,
        "limit": limit,
        "total": result.total,
        "pages": result.pages,
    }
