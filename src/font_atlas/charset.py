"""Character repertoire: which glyphs get rendered, and which ones calibrate metrics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable, Tuple

from .errors import ConfigurationError

DEFAULT_CHARS = "".join(chr(code) for code in range(0x20, 0x7F))
DEFAULT_BODY_ASCENT_REF = "acemnorsuvwxz"
DEFAULT_BASELINE_REF = "acemnorsuvwxz"
DEFAULT_DESCENT_REF = "gjpqy"


def _dedupe(chars: Iterable[str]) -> Tuple[str, ...]:
    seen = set()
    ordered = []
    for char in chars:
        if char in seen:
            continue
        seen.add(char)
        ordered.append(char)
    return tuple(ordered)


@dataclass(frozen=True)
class CharacterRepertoire:
    """Ordered, duplicate free set of characters plus three metric reference subsets.

    Reference subsets may be empty at construction time; averaging over an empty
    subset is rejected by :func:`font_atlas.metrics.aggregate_metrics`.
    """

    chars: Tuple[str, ...]
    body_ascent_ref: FrozenSet[str]
    baseline_ref: FrozenSet[str]
    descent_ref: FrozenSet[str]

    def __post_init__(self) -> None:
        for char in self.chars:
            if len(char) != 1:
                raise ConfigurationError(f"Repertoire entries must be single characters, got {char!r}")
        known = set(self.chars)
        for label, subset in (
            ("body ascent", self.body_ascent_ref),
            ("baseline", self.baseline_ref),
            ("descent", self.descent_ref),
        ):
            missing = sorted(subset - known)
            if missing:
                raise ConfigurationError(
                    f"{label} reference characters not in repertoire: {''.join(missing)!r}"
                )

    @classmethod
    def create(
        cls,
        chars: Iterable[str],
        body_ascent_ref: Iterable[str] = DEFAULT_BODY_ASCENT_REF,
        baseline_ref: Iterable[str] = DEFAULT_BASELINE_REF,
        descent_ref: Iterable[str] = DEFAULT_DESCENT_REF,
    ) -> "CharacterRepertoire":
        return cls(
            chars=_dedupe(chars),
            body_ascent_ref=frozenset(body_ascent_ref),
            baseline_ref=frozenset(baseline_ref),
            descent_ref=frozenset(descent_ref),
        )

    @classmethod
    def default(cls) -> "CharacterRepertoire":
        return cls.create(DEFAULT_CHARS)

    def merged_with(self, extra: Iterable[str] | None) -> "CharacterRepertoire":
        """Append extra characters (in order, skipping ones already present)."""
        if not extra:
            return self
        return CharacterRepertoire(
            chars=_dedupe(list(self.chars) + list(extra)),
            body_ascent_ref=self.body_ascent_ref,
            baseline_ref=self.baseline_ref,
            descent_ref=self.descent_ref,
        )

    def __len__(self) -> int:
        return len(self.chars)

    def __iter__(self):
        return iter(self.chars)

    def __contains__(self, char: object) -> bool:
        return char in self.chars
