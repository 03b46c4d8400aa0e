from __future__ import annotations


def paginate(query, *, page: int, limit: int) -> tuple[list, dict]:
    """
    Apply offset/limit to an ordered query.

    Returns the page's rows and the pagination metadata returned by every
    list endpoint.
    """
    total = query.order_by(None).count()
    total_pages = (total + limit - 1) // limit if total > 0 else 1

    rows = query.offset((page - 1) * limit).limit(limit).all()

    return rows, {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }
