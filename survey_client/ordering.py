"""Ordered collections whose order field is always 0..n-1.

Callers never set the order field directly: `append`, `remove` and `move`
restore the invariant through `reindex()`, and `update` refuses to touch it.
"""
from typing import Generic, Iterator, List, Optional, Sequence, TypeVar

from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)


class OrderedItems(Generic[T]):
    def __init__(self, order_field: str, items: Sequence[T] = ()):
        self.order_field = order_field
        self._items: List[T] = list(items)
        self.reindex()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __getitem__(self, index: int) -> T:
        return self._items[index]

    @property
    def ids(self) -> List[str]:
        return [item.id for item in self._items]

    def index_of(self, item_id: str) -> int:
        for i, item in enumerate(self._items):
            if item.id == item_id:
                return i
        raise KeyError(item_id)

    def get(self, item_id: str) -> Optional[T]:
        try:
            return self._items[self.index_of(item_id)]
        except KeyError:
            return None

    def reindex(self) -> None:
        self._items = [
            item if getattr(item, self.order_field) == i else item.model_copy(update={self.order_field: i})
            for i, item in enumerate(self._items)
        ]

    def append(self, item: T) -> T:
        item = item.model_copy(update={self.order_field: len(self._items)})
        self._items.append(item)
        return item

    def update(self, item_id: str, **fields) -> T:
        """Replace fields of the item with `item_id`, keeping its position."""
        if self.order_field in fields or "id" in fields:
            raise ValueError(f"'id' and '{self.order_field}' cannot be updated directly")
        i = self.index_of(item_id)
        item = self._items[i]
        unknown = sorted(set(fields) - set(type(item).model_fields))
        if unknown:
            raise ValueError(f"Unknown field(s) for {type(item).__name__}: {', '.join(unknown)}")
        updated = type(item).model_validate({**item.model_dump(), **fields})
        self._items[i] = updated
        return updated

    def remove(self, item_id: str) -> T:
        i = self.index_of(item_id)
        removed = self._items.pop(i)
        self.reindex()
        return removed

    def move(self, from_index: int, to_index: int) -> None:
        n = len(self._items)
        if not (0 <= from_index < n and 0 <= to_index < n):
            raise IndexError(f"move {from_index} -> {to_index} out of range for {n} items")
        item = self._items.pop(from_index)
        self._items.insert(to_index, item)
        self.reindex()

    def extend(self, items: Sequence[T]) -> None:
        for item in items:
            self.append(item)
