"""Content catalog: the ordered collection of items a run works from.

The catalog owns id uniqueness and the canonical ordering every later stage
relies on: priority tier first, insertion order within a tier. Chunks,
fitting and coverage reports are all stable sub-orders of catalog.ordered().

items_from_sections() is the adapter for the named context sections the
interview product assembles (project summary, custom prompt, Q&A, ...).
"""

from collections.abc import Iterable, Mapping

from interview_engine.pydantic_models.content_models import ContentCategory, ContentItem


class ContentCatalog:
    """Ordered, id-unique collection of ContentItems.

    Usage:
        catalog = ContentCatalog(items)
        for item in catalog.ordered():
            ...
    """

    def __init__(self, items: Iterable[ContentItem] = ()):
        self._items: dict[str, ContentItem] = {}
        self._position: dict[str, int] = {}
        for item in items:
            self.add(item)

    def add(self, item: ContentItem) -> None:
        """Append an item.

        Raises:
            ValueError: If an item with the same id is already present.
        """
        if item.id in self._items:
            raise ValueError(f"Duplicate content item id: {item.id!r}")
        self._position[item.id] = len(self._items)
        self._items[item.id] = item

    def ordered(self) -> list[ContentItem]:
        """Items sorted by (priority_tier, insertion index)."""
        return sorted(
            self._items.values(),
            key=lambda item: (item.priority_tier, self._position[item.id]),
        )

    def get(self, item_id: str) -> ContentItem | None:
        return self._items.get(item_id)

    @property
    def ids(self) -> list[str]:
        """Item ids in catalog order."""
        return [item.id for item in self.ordered()]

    @property
    def total_size(self) -> int:
        return sum(item.size_estimate for item in self._items.values())

    def sort_ids(self, ids: Iterable[str]) -> list[str]:
        """Order a subset of ids the way the catalog orders them; unknown ids go last."""
        unknown = len(self._items)
        return sorted(set(ids), key=lambda i: self._sort_key(i, unknown))

    def _sort_key(self, item_id: str, unknown: int) -> tuple[int, int, str]:
        item = self._items.get(item_id)
        if item is None:
            return (unknown, unknown, item_id)
        return (item.priority_tier, self._position[item_id], item_id)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self.ordered())


# =============================================================================
# Section adapter
# =============================================================================

SECTION_CATEGORIES: dict[str, ContentCategory] = {
    "project_summary": ContentCategory.SUMMARY,
    "custom_prompt": ContentCategory.INSTRUCTIONS,
    "template_prompt": ContentCategory.INSTRUCTIONS,
    "question_answers": ContentCategory.QA_PAIR,
    "stakeholder_profiles": ContentCategory.PROFILE,
    "file_content": ContentCategory.FILE_EXCERPT,
    "questions_list": ContentCategory.ITEM_LIST,
    "metadata": ContentCategory.METADATA,
}
"""Named context sections and the category each one maps to.

Sections listed first are more important; their tiers follow the list order
so custom_prompt outranks template_prompt.
"""


def items_from_sections(sections: Mapping[str, str | None]) -> list[ContentItem]:
    """Build content items from named context sections.

    Unknown section names are rejected, empty ones skipped. Each section
    becomes one item whose id is the section name.

    Raises:
        ValueError: For a section name that is not in SECTION_CATEGORIES.
    """
    unknown = set(sections) - set(SECTION_CATEGORIES)
    if unknown:
        raise ValueError(f"Unknown context section(s): {', '.join(sorted(unknown))}")

    items = []
    for tier, (name, category) in enumerate(SECTION_CATEGORIES.items()):
        text = sections.get(name)
        if not text or not text.strip():
            continue
        items.append(ContentItem.from_text(name, category, text.strip(), priority_tier=tier))
    return items


__all__ = [
    "ContentCatalog",
    "SECTION_CATEGORIES",
    "items_from_sections",
]
