"""Sparse Merkle map: a fixed-depth authenticated key/value store.

Every key addresses one leaf of a binary tree of height ``depth``; the path
from leaf to root is given by the key bits, least significant bit first.
Unset keys hold the value 0, so a tree of 2**256 leaves is represented by
the handful of nodes that differ from the precomputed empty subtrees.

A witness is the list of sibling digests on that path. Because siblings do
not change when a single leaf changes, one witness can both verify the
current value under a key and produce the root after that value is replaced.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Tuple

from zkmixer.exceptions import InvalidWitnessError
from zkmixer.utils.encoding import bytes_to_hex, hex_to_bytes
from zkmixer.utils.hash import DIGEST_SIZE, hash_leaf, merkle_hash

DEFAULT_DEPTH = 256
DEFAULT_VALUE = 0

_default_digest_cache: Dict[int, Tuple[bytes, ...]] = {}


def default_digests(depth: int) -> Tuple[bytes, ...]:
    """
    Digests of empty subtrees, indexed by level (0 = leaf).

    The last entry is the root of an empty map.
    """
    cached = _default_digest_cache.get(depth)
    if cached is None:
        current = hash_leaf(DEFAULT_VALUE)
        digests = [current]
        for _ in range(depth):
            current = merkle_hash(current, current)
            digests.append(current)
        cached = tuple(digests)
        _default_digest_cache[depth] = cached
    return cached


def _check_key(key: int, depth: int) -> None:
    if isinstance(key, bool) or not isinstance(key, int):
        raise ValueError(f"Key must be an int, got {type(key).__name__}")
    if key < 0 or key.bit_length() > depth:
        raise ValueError(f"Key does not fit in a depth-{depth} map")


@dataclass(frozen=True)
class MapWitness:
    """Sibling path for one key, ordered from leaf level to just below the root."""

    key: int
    siblings: Tuple[bytes, ...]

    def __post_init__(self):
        for sibling in self.siblings:
            if not isinstance(sibling, bytes) or len(sibling) != DIGEST_SIZE:
                raise InvalidWitnessError("Witness siblings must be 32-byte digests")

    @property
    def depth(self) -> int:
        return len(self.siblings)

    def to_dict(self) -> dict:
        return {
            "key": str(self.key),
            "siblings": [bytes_to_hex(s) for s in self.siblings],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MapWitness":
        try:
            return cls(
                key=int(data["key"]),
                siblings=tuple(hex_to_bytes(s) for s in data["siblings"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidWitnessError(f"Malformed witness: {e}") from e


def compute_root_for_value(witness: MapWitness, key: int, value: int) -> bytes:
    """
    Recompute the root implied by asserting ``key -> value``.

    Pure function of its arguments. A stale or forged witness simply yields a
    root that differs from the authoritative one.

    Args:
        witness: Sibling path
        key: Key whose leaf is being asserted
        value: Claimed (or new) value at that key

    Returns:
        bytes: 32-byte root digest

    Raises:
        InvalidWitnessError: If the witness is structurally unusable
        ValueError: If the key does not fit the witness depth
    """
    if not isinstance(witness, MapWitness):
        raise InvalidWitnessError("Expected a MapWitness")
    if witness.depth == 0:
        raise InvalidWitnessError("Witness has no siblings")
    _check_key(key, witness.depth)

    current = hash_leaf(value)
    position = key

    for sibling in witness.siblings:
        if position & 1 == 0:
            current = merkle_hash(current, sibling)
        else:
            current = merkle_hash(sibling, current)
        position >>= 1

    return current


class SparseMerkleMap:
    """
    In-memory sparse Merkle map.

    Nodes are stored as ``(level, position) -> digest`` and only where they
    differ from the empty-subtree digest for their level.
    """

    def __init__(self, depth: int = DEFAULT_DEPTH):
        """
        Initialize an empty map.

        Args:
            depth: Tree height; keys must be below 2**depth

        Raises:
            ValueError: If depth is invalid
        """
        if isinstance(depth, bool) or not isinstance(depth, int) or depth < 1 or depth > 256:
            raise ValueError("Map depth must be between 1 and 256")

        self.depth = depth
        self._defaults = default_digests(depth)
        self._values: Dict[int, int] = {}
        self.nodes: Dict[Tuple[int, int], bytes] = {}

    def _node(self, level: int, position: int) -> bytes:
        return self.nodes.get((level, position), self._defaults[level])

    def _store(self, level: int, position: int, digest: bytes) -> None:
        if digest == self._defaults[level]:
            self.nodes.pop((level, position), None)
        else:
            self.nodes[(level, position)] = digest

    def get_root(self) -> bytes:
        """Get the current root digest."""
        return self._node(self.depth, 0)

    @property
    def root(self) -> bytes:
        return self.get_root()

    def get(self, key: int) -> int:
        """Value held at key (0 when unset)."""
        _check_key(key, self.depth)
        return self._values.get(key, DEFAULT_VALUE)

    def set(self, key: int, value: int) -> bytes:
        """
        Set a value and update the path to the root.

        Setting a key back to 0 removes it from the map.

        Returns:
            bytes: The new root
        """
        _check_key(key, self.depth)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError("Value must be a non-negative int")

        if value == DEFAULT_VALUE:
            self._values.pop(key, None)
        else:
            self._values[key] = value

        current = hash_leaf(value)
        position = key
        self._store(0, position, current)

        for level in range(self.depth):
            sibling = self._node(level, position ^ 1)
            if position & 1 == 0:
                current = merkle_hash(current, sibling)
            else:
                current = merkle_hash(sibling, current)
            position >>= 1
            self._store(level + 1, position, current)

        return current

    def get_witness(self, key: int) -> MapWitness:
        """
        Build the sibling path for a key.

        Works for set and unset keys alike.
        """
        _check_key(key, self.depth)
        siblings: List[bytes] = []
        position = key

        for level in range(self.depth):
            siblings.append(self._node(level, position ^ 1))
            position >>= 1

        return MapWitness(key=key, siblings=tuple(siblings))

    def compute_root_for_value(self, witness: MapWitness, key: int, value: int) -> bytes:
        """See module-level :func:`compute_root_for_value`."""
        if witness.depth != self.depth:
            raise InvalidWitnessError(
                f"Witness has {witness.depth} siblings, map depth is {self.depth}"
            )
        return compute_root_for_value(witness, key, value)

    def items(self) -> Iterator[Tuple[int, int]]:
        """Iterate non-default entries."""
        return iter(sorted(self._values.items()))

    def __contains__(self, key: int) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(depth={self.depth}, "
            f"entries={len(self._values)}, "
            f"root={self.get_root().hex()[:16]}...)"
        )
