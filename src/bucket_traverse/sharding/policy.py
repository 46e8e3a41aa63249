"""Alphabet policy shared by the shard planner and the membership oracle.

The planner decides which first-characters get a dedicated shard; the
oracle decides which first-characters the catch-all shard keeps.  Both
answers come from the same :class:`AlphabetPolicy` instance (each
descriptor carries the policy it was planned under), so the two can never
disagree about which characters are "claimed".

Only the 62 ASCII alphanumerics are claimed by :data:`ALPHANUMERIC_POLICY`.
``.``, ``_``, ``-`` and every other character, including non-ASCII letters
such as ``é``, belong to the catch-all shard.
"""

from __future__ import annotations

import string
from dataclasses import dataclass, field


@dataclass(frozen=True)
class AlphabetPolicy:
    """Ordered alphabet of characters that may own a character-class shard."""

    alphabet: str
    _claimed: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not self.alphabet:
            raise ValueError("Alphabet must not be empty")
        if len(set(self.alphabet)) != len(self.alphabet):
            raise ValueError(f"Alphabet contains duplicate characters: {self.alphabet!r}")
        object.__setattr__(self, "_claimed", frozenset(self.alphabet))

    def __len__(self) -> int:
        return len(self.alphabet)

    def claims(self, char: str) -> bool:
        """Return True if *char* is owned by some character-class shard."""
        return char in self._claimed

    def group(self, count: int) -> list[tuple[str, ...]]:
        """Split the alphabet into ``min(count, len(alphabet))`` contiguous groups.

        Group sizes differ by at most one; the larger groups come first.
        """
        if count < 1:
            raise ValueError(f"Group count must be positive, got {count}")

        count = min(count, len(self.alphabet))
        base, extra = divmod(len(self.alphabet), count)

        groups: list[tuple[str, ...]] = []
        start = 0
        for i in range(count):
            size = base + (1 if i < extra else 0)
            groups.append(tuple(self.alphabet[start : start + size]))
            start += size
        return groups


# Digits, then uppercase, then lowercase: ASCII order, 62 characters.
ALPHANUMERIC_POLICY = AlphabetPolicy(string.digits + string.ascii_uppercase + string.ascii_lowercase)
