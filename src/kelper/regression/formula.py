"""Structured regression formulas.

Formulas are written in brms/lme4 notation and parsed once into a value type::

    Formula.parse("logWtStipe ~ logLenStipe * fetch + (1 | location)")
    # response="logWtStipe"
    # terms=(("logLenStipe",), ("fetch",), ("logLenStipe", "fetch"))
    # group="location"

``a * b`` expands to ``a + b + a:b``; ``a:b`` is a single interaction term;
``(1 | g)`` is a random intercept by ``g``. A formula without a left-hand side
(``~ x + z``) is a distributional-parameter formula (zero-inflation).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from itertools import chain, combinations

Term = tuple[str, ...]

_RANDOM_INTERCEPT = re.compile(r"\(\s*1\s*\|\s*([A-Za-z_.][\w.]*)\s*\)")
_NAME = re.compile(r"^[A-Za-z_.][\w.]*$")


def _expand_chunk(chunk: str) -> list[Term]:
    """Expand one ``+``-separated chunk into its terms."""
    factors: list[Term] = []
    for factor in chunk.split("*"):
        names = tuple(n.strip() for n in factor.split(":"))
        for name in names:
            if not _NAME.match(name):
                msg = f"Invalid variable name in formula: {name!r}"
                raise ValueError(msg)
        factors.append(names)

    terms: list[Term] = []
    for size in range(1, len(factors) + 1):
        for combo in combinations(factors, size):
            term = tuple(dict.fromkeys(chain.from_iterable(combo)))
            terms.append(term)
    return terms


@dataclass(frozen=True)
class Formula:
    """A parsed fixed-effects formula with an optional random intercept."""

    response: str | None
    terms: tuple[Term, ...]
    group: str | None = None

    @classmethod
    def parse(cls, text: str) -> Formula:
        """Parse brms-style formula text.

        Raises:
            ValueError: On a missing ``~``, more than one grouping term, or
                malformed variable names.
        """
        if text.count("~") != 1:
            msg = f"Formula needs exactly one '~': {text!r}"
            raise ValueError(msg)
        lhs, rhs = (part.strip() for part in text.split("~"))

        groups = _RANDOM_INTERCEPT.findall(rhs)
        if len(groups) > 1:
            msg = f"Only one random intercept is supported: {text!r}"
            raise ValueError(msg)
        rhs = _RANDOM_INTERCEPT.sub("", rhs)

        seen: set[frozenset[str]] = set()
        terms: list[Term] = []
        for chunk in rhs.split("+"):
            chunk = chunk.strip()
            if not chunk or chunk == "1":
                continue
            for term in _expand_chunk(chunk):
                key = frozenset(term)
                if key not in seen:
                    seen.add(key)
                    terms.append(term)

        # Main effects first, then interactions by order (as R's terms() does)
        terms.sort(key=len)
        return cls(response=lhs or None, terms=tuple(terms), group=groups[0] if groups else None)

    @property
    def predictors(self) -> tuple[str, ...]:
        """Distinct variables used by the fixed-effect terms, in order."""
        return tuple(dict.fromkeys(chain.from_iterable(self.terms)))

    @property
    def variables(self) -> tuple[str, ...]:
        """Every column the formula references: response, predictors, group."""
        names = [self.response] if self.response else []
        names.extend(self.predictors)
        if self.group:
            names.append(self.group)
        return tuple(dict.fromkeys(names))

    @property
    def interactions(self) -> tuple[Term, ...]:
        return tuple(t for t in self.terms if len(t) > 1)

    @property
    def has_random_intercept(self) -> bool:
        return self.group is not None

    def __str__(self) -> str:
        parts = [":".join(t) for t in self.terms] or ["1"]
        if self.group:
            parts.append(f"(1 | {self.group})")
        rhs = " + ".join(parts)
        return f"{self.response} ~ {rhs}" if self.response else f"~ {rhs}"
