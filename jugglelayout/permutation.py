# permutation.py
#
# Permutations of path numbers and juggler numbers (1-based).
#
# A "reversing" permutation can map element i onto -j: used for juggler
# permutations where juggler i's right hand corresponds to juggler j's left
# hand. Elements it does not touch map to 0.

from __future__ import annotations

import math
from typing import Iterable, List, Optional, Tuple

from .errors import PatternError


class Permutation:
    def __init__(self, n: int, mapping: Optional[Iterable[int]] = None, reverses: bool = False):
        """
        n        : number of elements
        mapping  : targets of 1..n (or of -n..n when reverses); identity if None
        """
        self.size = int(n)
        self.reverses = bool(reverses)

        if mapping is None:
            if self.reverses:
                self._mapping = tuple(range(-self.size, self.size + 1))
            else:
                self._mapping = tuple(range(1, self.size + 1))
        else:
            self._mapping = tuple(int(m) for m in mapping)
            expected = 2 * self.size + 1 if self.reverses else self.size
            if len(self._mapping) != expected:
                raise ValueError(f"Permutation mapping must have {expected} entries, got {len(self._mapping)}")

    # ----------------------------
    # Parsing
    # ----------------------------

    @classmethod
    def parse(cls, n: int, text: str, reverses: bool = False) -> "Permutation":
        """
        Build from a string: either an explicit mapping "2,3,1" or cycle
        notation "(1,2)(3)". With reverses, "2*" stands for element -2.
        """
        size = int(n)
        if reverses:
            mapping = [0] * (2 * size + 1)
            used = [False] * (2 * size + 1)
            offset = size
        else:
            mapping = [0] * size
            used = [False] * size
            offset = -1

        if "(" not in text:
            tokens = [s.strip() for s in text.split(",") if s.strip()]
            if len(tokens) != size:
                raise PatternError(f"Permutation init error: must have {size} elements in mapping")
            for i, tok in enumerate(tokens):
                num = _parse_element(tok, False)
                if not 1 <= num <= size:
                    raise PatternError("Permutation init error: out of range")
                if used[num - 1]:
                    raise PatternError("Permutation init error: not one-to-one")
                used[num - 1] = True
                mapping[i] = num
            if reverses:
                # explicit mappings never encode reverses; widen to signed form
                signed = [0] * (2 * size + 1)
                for i, num in enumerate(mapping):
                    signed[size + i + 1] = num
                    signed[size - i - 1] = -num
                return cls(size, signed, True)
            return cls(size, mapping, False)

        for group in text.split(")"):
            group = group.strip()
            if not group:
                continue
            if group[0] != "(":
                raise PatternError("Permutation init error: parenthesis not grouped")
            lastnum = None
            for tok in group[1:].split(","):
                tok = tok.strip()
                if not tok:
                    continue
                num = _parse_element(tok, reverses)

                if reverses:
                    if num < -size or num > size or num == 0:
                        raise PatternError("Permutation init error: out of range")
                else:
                    if not 1 <= num <= size:
                        raise PatternError("Permutation init error: out of range")
                if used[num + offset]:
                    raise PatternError("Permutation init error: not one-to-one")
                used[num + offset] = True

                if lastnum is None:
                    mapping[num + offset] = num
                else:
                    mapping[num + offset] = mapping[lastnum + offset]
                    mapping[lastnum + offset] = num
                    if reverses and used[-lastnum + offset] and mapping[-lastnum + offset] != -num:
                        raise PatternError("Permutation init error: input not reversible")
                lastnum = num

        if reverses:
            for i in range(1, size + 1):
                pos, neg = i + size, -i + size
                if used[pos] and not used[neg]:
                    mapping[neg] = -mapping[pos]
                elif not used[pos] and used[neg]:
                    mapping[pos] = -mapping[neg]
                elif not used[pos] and not used[neg]:
                    mapping[pos] = 0
                    mapping[neg] = 0
        else:
            for i in range(size):
                if not used[i]:
                    mapping[i] = i + 1

        return cls(size, mapping, reverses)

    # ----------------------------
    # Mapping
    # ----------------------------

    def _index(self, elem: int) -> int:
        return elem + self.size if self.reverses else elem - 1

    def map(self, elem: int, power: int = 1) -> int:
        """Apply the permutation `power` times (the inverse when power < 0)."""
        el = int(elem)
        if power >= 0:
            for _ in range(power):
                el = self._mapping[self._index(el)]
        else:
            for _ in range(-power):
                el = self.inverse_map(el)
        return el

    def inverse_map(self, elem: int) -> int:
        for i, m in enumerate(self._mapping):
            if m == elem:
                return i - self.size if self.reverses else i + 1
        return 0

    @property
    def mapping(self) -> Tuple[int, ...]:
        return self._mapping

    @property
    def inverse(self) -> "Permutation":
        inv = [0] * len(self._mapping)
        if self.reverses:
            for i, m in enumerate(self._mapping):
                inv[m + self.size] = i - self.size
        else:
            for i, m in enumerate(self._mapping):
                inv[m - 1] = i + 1
        return Permutation(self.size, inv, self.reverses)

    def compose(self, other: "Permutation") -> "Permutation":
        """Permutation equal to this one followed by `other`."""
        if self.reverses or other.reverses:
            raise ValueError("compose() is defined for non-reversing permutations only")
        if self.size != other.size:
            raise ValueError(f"Cannot compose permutations of size {self.size} and {other.size}")
        return Permutation(self.size, [other.map(self.map(i)) for i in range(1, self.size + 1)])

    def power(self, k: int) -> "Permutation":
        base = self if k >= 0 else self.inverse
        result = Permutation(self.size, reverses=self.reverses)
        for _ in range(abs(k)):
            result = result.compose(base)
        return result

    # ----------------------------
    # Cycle structure
    # ----------------------------

    @property
    def order(self) -> int:
        ord_ = 1
        for elem in range(1, self.size + 1):
            if self.map(elem) != 0:
                ord_ = lcm(ord_, self.element_order(elem))
        return ord_

    def element_order(self, elem: int) -> int:
        ord_ = 1
        current = self.map(elem)
        while current != elem:
            if current == 0:
                raise ValueError(f"Element {elem} is not mapped by this permutation")
            ord_ += 1
            current = self.map(current)
        return ord_

    def cycle_of(self, elem: int) -> Tuple[int, ...]:
        cycle: List[int] = []
        term = elem
        for _ in range(self.element_order(elem)):
            cycle.append(term)
            term = self.map(term)
        return tuple(cycle)

    def is_identity(self) -> bool:
        return all(self.map(i) == i for i in range(1, self.size + 1))

    # ----------------------------
    # Comparison / printing
    # ----------------------------

    def __eq__(self, other) -> bool:
        if not isinstance(other, Permutation):
            return NotImplemented
        if self.reverses != other.reverses or self.size != other.size:
            return False
        return all(self.map(i) == other.map(i) for i in range(1, self.size + 1))

    def __hash__(self) -> int:
        return hash((self.size, self.reverses, tuple(self.map(i) for i in range(1, self.size + 1))))

    def to_string(self, cycle_notation: bool = True) -> str:
        if not cycle_notation:
            return ",".join(_format_element(self.map(i)) for i in range(1, self.size + 1))

        parts = []
        printed = [False] * self.size
        for i in range(self.size):
            if printed[i]:
                continue
            start = i + 1
            printed[i] = True
            current = self.map(start)
            if current == 0:
                continue
            terms = [_format_element(start)]
            while current != start:
                printed[abs(current) - 1] = True
                terms.append(_format_element(current))
                current = self.map(current)
            parts.append("(" + ",".join(terms) + ")")
        return "".join(parts)

    def __str__(self) -> str:
        return self.to_string(True)

    def __repr__(self) -> str:
        return f"Permutation({self.size}, '{self.to_string()}', reverses={self.reverses})"


def lcm(x: int, y: int) -> int:
    return x * y // math.gcd(x, y)


def _parse_element(tok: str, reverses: bool) -> int:
    negate = False
    if reverses and tok.endswith("*"):
        negate = True
        tok = tok[:-1].strip()
    try:
        num = int(tok)
    except ValueError:
        raise PatternError("Permutation init error: number format") from None
    return -num if negate else num


def _format_element(num: int) -> str:
    return str(num) if num >= 0 else f"{-num}*"
