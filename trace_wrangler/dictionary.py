"""
Surrogate-key dictionary: in-memory cache of key -> id.

The sink is authoritative for ids. The normalizer asks the sink to insert
an unknown key and then registers the returned id here; this class never
talks to the sink itself.
"""

from typing import Generic, Hashable, Iterable, Iterator, Optional, TypeVar

from trace_wrangler.errors import DictionaryError

K = TypeVar("K", bound=Hashable)


class SurrogateDictionary(Generic[K]):
    """
    Maps deduplication keys (Context or Point) to surrogate integer ids.

    Ids are registered in strictly increasing order, so the cache can never
    hand out or accept an id that collides with a preloaded one.
    """

    def __init__(self, name: str):
        self.name = name
        self._ids: dict[K, int] = {}
        self._keys: dict[int, K] = {}
        self._max_id = 0

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, key: object) -> bool:
        return key in self._ids

    def __repr__(self) -> str:
        return f"SurrogateDictionary({self.name!r}, entries={len(self)}, max_id={self._max_id})"

    @property
    def next_id(self) -> int:
        """Smallest id guaranteed not to collide with a known one."""
        return self._max_id + 1

    def preload(self, entries: Iterable[tuple[K, int]]) -> None:
        """
        Seed the cache from the sink's durable dictionary.

        Entries may arrive in any order; duplicates of either key or id mean
        the sink is corrupt and are rejected.
        """
        for key, id_ in entries:
            if key in self._ids:
                raise DictionaryError(f"{self.name}: duplicate key {key!r} in preload")
            if id_ in self._keys:
                raise DictionaryError(f"{self.name}: duplicate id {id_} in preload")
            self._ids[key] = id_
            self._keys[id_] = key
            self._max_id = max(self._max_id, id_)

    def lookup(self, key: K) -> Optional[int]:
        """Return the id for key, or None. No side effects."""
        return self._ids.get(key)

    def resolve(self, key: K) -> int:
        """Return the id for a known key; KeyError if the key is unknown."""
        return self._ids[key]

    def register(self, key: K, id_: int) -> None:
        """Record the id the sink assigned to a newly inserted key."""
        if key in self._ids:
            raise DictionaryError(f"{self.name}: key {key!r} already has id {self._ids[key]}")
        if id_ <= self._max_id:
            raise DictionaryError(
                f"{self.name}: id {id_} is not above the current maximum {self._max_id}"
            )
        self._ids[key] = id_
        self._keys[id_] = key
        self._max_id = id_

    def discard(self, keys: Iterable[K]) -> None:
        """Forget keys whose insertion was rolled back in the sink."""
        for key in keys:
            id_ = self._ids.pop(key, None)
            if id_ is not None:
                del self._keys[id_]
        self._max_id = max(self._keys, default=0)

    def items(self) -> Iterator[tuple[K, int]]:
        """Entries in id order."""
        for id_ in sorted(self._keys):
            yield self._keys[id_], id_
