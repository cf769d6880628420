from hn_tracker.extract.rows import (
    HtmlRow,
    Row,
    RowKind,
    comment_rows,
    front_page_rows,
    parse_document,
    parse_int_prefix,
)

__all__ = [
    "HtmlRow",
    "Row",
    "RowKind",
    "comment_rows",
    "front_page_rows",
    "parse_document",
    "parse_int_prefix",
]
