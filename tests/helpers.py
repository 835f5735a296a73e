from __future__ import annotations

from typing import Any, Dict, List

SAMPLE_FILTERS: List[Dict[str, Any]] = [
    {"id": "name", "label": "Name", "type": "string"},
    {
        "id": "age",
        "label": "Age",
        "type": "integer",
        "validation": {"min": 0, "max": 150},
    },
    {"id": "price", "label": "Price", "type": "double"},
    {
        "id": "category",
        "label": "Category",
        "type": "string",
        "input": "select",
        "values": {"books": "Books", "music": "Music"},
        "operators": ["not_equal", "equal"],
    },
    {"id": "active", "label": "Active", "type": "boolean"},
    {
        "id": "created",
        "label": "Created",
        "type": "date",
        "validation": {"format": "%Y-%m-%d"},
    },
]

SAMPLE_RULES: Dict[str, Any] = {
    "condition": "OR",
    "rules": [
        {"id": "age", "operator": "between", "value": [18, 65]},
        {"id": "name", "operator": "begins_with", "value": "Jo"},
        {
            "condition": "AND",
            "rules": [
                {"id": "category", "operator": "equal", "value": "books"},
                {"id": "active", "operator": "equal", "value": "true"},
            ],
        },
    ],
}
