"""
api/pagination.py -- Build the paginated list envelope.

The envelope carries absolute URLs for the first, last, previous and next
pages, built from the incoming request URL so any other query parameters
(per_page, sort_by, sort_dir) survive navigation.

links holds "Previous", a window of page numbers around the current page,
and "Next". Pages outside the window are not listed.
"""

from __future__ import annotations

import math

from starlette.datastructures import URL

from api.models import Page, PageLink, RecordOut

LINK_WINDOW = 3


def _page_url(url: URL, page: int) -> str:
    return str(url.include_query_params(page=page))


def build_page(
    records: list[RecordOut],
    *,
    total: int,
    page: int,
    per_page: int,
    url: URL,
) -> Page:
    last_page = max(1, math.ceil(total / per_page))
    path = str(url.replace(query=""))

    if records:
        first = (page - 1) * per_page + 1
        last = first + len(records) - 1
    else:
        first = last = None

    prev_url = _page_url(url, page - 1) if page > 1 else None
    next_url = _page_url(url, page + 1) if page < last_page else None

    links = [PageLink(url=prev_url, label="&laquo; Previous", active=False)]
    for n in range(max(1, page - LINK_WINDOW), min(last_page, page + LINK_WINDOW) + 1):
        links.append(PageLink(url=_page_url(url, n), label=str(n), active=n == page))
    links.append(PageLink(url=next_url, label="Next &raquo;", active=False))

    return Page(
        current_page=page,
        data=records,
        first_page_url=_page_url(url, 1),
        from_=first,
        last_page=last_page,
        last_page_url=_page_url(url, last_page),
        links=links,
        next_page_url=next_url,
        path=path,
        per_page=per_page,
        prev_page_url=prev_url,
        to=last,
        total=total,
    )
