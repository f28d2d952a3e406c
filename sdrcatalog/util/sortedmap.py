"""Key-ordered mapping with lower-bound lookups."""

from __future__ import annotations

from bisect import bisect_left, insort
from typing import Any, Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class SortedMap(Generic[K, V]):
    """Dict that iterates in key order and supports ``lower_bound`` range scans.

    Iterators returned by this class are only valid until the next mutation.
    """

    def __init__(self) -> None:
        self._keys: List[K] = []
        self._data: Dict[K, V] = {}

    def __setitem__(self, key: K, value: V) -> None:
        if key not in self._data:
            insort(self._keys, key)
        self._data[key] = value

    def __getitem__(self, key: K) -> V:
        return self._data[key]

    def __delitem__(self, key: K) -> None:
        del self._data[key]
        idx = bisect_left(self._keys, key)
        del self._keys[idx]

    def __contains__(self, key: Any) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[K]:
        return iter(self._keys)

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        return self._data.get(key, default)

    def pop(self, key: K, default: Optional[V] = None) -> Optional[V]:
        if key not in self._data:
            return default
        value = self._data[key]
        del self[key]
        return value

    def clear(self) -> None:
        self._keys.clear()
        self._data.clear()

    def keys(self) -> List[K]:
        return list(self._keys)

    def values(self) -> Iterator[V]:
        for key in self._keys:
            yield self._data[key]

    def items(self) -> Iterator[Tuple[K, V]]:
        for key in self._keys:
            yield key, self._data[key]

    def lower_bound(self, key: K) -> Iterator[Tuple[K, V]]:
        """Yield items whose key is >= ``key``, in order."""
        idx = bisect_left(self._keys, key)
        for k in self._keys[idx:]:
            yield k, self._data[k]
