"""Category hierarchy helpers for the category and product forms.

Categories reference their parent by id. Every traversal here uses an
explicit worklist, so arbitrarily deep trees (or corrupted data containing a
cycle) cannot exhaust the stack.
"""

from __future__ import annotations

from collections import defaultdict, deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from .catalog_schemas import Category


@dataclass(slots=True)
class OrganizedCategory:
    """Top-level category with its direct children, as listed in the product form."""

    category: Category
    children: list[Category] = field(default_factory=list)


def _children_index(categories: Iterable[Category]) -> dict[int, list[Category]]:
    index: dict[int, list[Category]] = defaultdict(list)
    for category in categories:
        if category.parent_id is not None:
            index[category.parent_id].append(category)
    return index


def category_path(category: Category, categories: Sequence[Category], separator: str = " > ") -> str:
    """Return ``"Root > Parent > Child"`` for ``category``."""
    by_id = {item.id: item for item in categories}
    names = [category.name]
    seen = {category.id}
    parent_id = category.parent_id
    while parent_id is not None and parent_id in by_id and parent_id not in seen:
        parent = by_id[parent_id]
        names.append(parent.name)
        seen.add(parent.id)
        parent_id = parent.parent_id
    return separator.join(reversed(names))


def descendant_ids(root_id: int, categories: Sequence[Category]) -> list[int]:
    """Breadth-first closure of ``root_id`` over the parent relation, root first."""
    children = _children_index(categories)
    ordered = [root_id]
    seen = {root_id}
    worklist = deque([root_id])
    while worklist:
        current = worklist.popleft()
        for child in children.get(current, ()):
            if child.id not in seen:
                seen.add(child.id)
                ordered.append(child.id)
                worklist.append(child.id)
    return ordered


def parent_options(categories: Sequence[Category], editing_id: int | None = None) -> list[Category]:
    """Categories that may become the parent of ``editing_id``.

    The edited category and all of its descendants are excluded, which rules
    out circular parent chains.
    """
    if editing_id is None:
        return list(categories)
    excluded = set(descendant_ids(editing_id, categories))
    return [category for category in categories if category.id not in excluded]


def organize_categories(categories: Sequence[Category]) -> list[OrganizedCategory]:
    children = _children_index(categories)
    return [
        OrganizedCategory(category=category, children=list(children.get(category.id, ())))
        for category in categories
        if category.parent_id is None
    ]


def toggle_category(
    selected: Sequence[int],
    category_id: int,
    checked: bool,
    categories: Sequence[Category],
) -> list[int]:
    """Apply a checkbox change: a category carries its whole subtree with it."""
    subtree = descendant_ids(category_id, categories)
    if checked:
        result = list(selected)
        present = set(result)
        result.extend(item for item in subtree if item not in present)
        return result
    removed = set(subtree)
    return [item for item in selected if item not in removed]
