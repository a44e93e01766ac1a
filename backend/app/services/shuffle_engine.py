from __future__ import annotations

import random
from typing import Optional, Sequence, TypeVar

T = TypeVar("T")

_sysrand = random.SystemRandom()


def shuffled(items: Sequence[T], enabled: bool, rng: Optional[random.Random] = None) -> list[T]:
    """Return a copy of ``items``; uniformly permuted (Fisher–Yates) when enabled."""
    out = list(items)
    if not enabled:
        return out
    r = rng or _sysrand
    for i in range(len(out) - 1, 0, -1):
        j = r.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


def permutation(n: int, enabled: bool, rng: Optional[random.Random] = None) -> list[int]:
    """Index order for a sequence of length ``n``."""
    return shuffled(range(max(0, int(n))), enabled, rng)


def apply_permutation(items: Sequence[T], order: Sequence[int] | None) -> list[T]:
    """Reorder ``items`` by a stored permutation.

    A permutation that no longer fits (the option list was edited after the
    attempt started) is ignored and the authored order is used.
    """
    base = list(items)
    if not order or sorted(int(i) for i in order) != list(range(len(base))):
        return base
    return [base[int(i)] for i in order]


def build_presentation_order(
    questions: Sequence,
    *,
    shuffle_questions: bool,
    shuffle_options: bool,
    rng: Optional[random.Random] = None,
) -> tuple[list[int], dict[str, list[int]]]:
    """Pick the question order and each question's option order for a new attempt.

    Returns ``(question_ids, {str(question_id): option_indexes})``. Options are
    permuted by index so an option's text (and therefore its correctness)
    never changes, only its position.
    """
    ordered = sorted(questions, key=lambda q: (int(q.order_index or 0), int(q.id)))
    question_ids = [int(q.id) for q in shuffled(ordered, shuffle_questions, rng)]

    option_order: dict[str, list[int]] = {}
    for q in ordered:
        opts = q.options or []
        if opts:
            option_order[str(q.id)] = permutation(len(opts), shuffle_options, rng)
    return question_ids, option_order
