import random
from types import SimpleNamespace

from app.services.shuffle_engine import apply_permutation, build_presentation_order, permutation, shuffled


def _questions():
    return [
        SimpleNamespace(id=11, order_index=1, options=["a", "b", "c", "d"]),
        SimpleNamespace(id=10, order_index=0, options=None),
        SimpleNamespace(id=12, order_index=2, options=["True", "False"]),
    ]


def test_disabled_keeps_authored_order():
    assert shuffled([3, 1, 2], enabled=False) == [3, 1, 2]
    assert permutation(4, enabled=False) == [0, 1, 2, 3]


def test_shuffle_is_a_bijection():
    rng = random.Random(7)
    items = list(range(20))
    for _ in range(50):
        out = shuffled(items, enabled=True, rng=rng)
        assert sorted(out) == items
    assert items == list(range(20))


def test_shuffle_reaches_more_than_one_order():
    rng = random.Random(1)
    seen = {tuple(shuffled([1, 2, 3], enabled=True, rng=rng)) for _ in range(200)}
    assert len(seen) == 6


def test_presentation_order_without_shuffle_follows_order_index():
    question_ids, option_order = build_presentation_order(
        _questions(), shuffle_questions=False, shuffle_options=False
    )
    assert question_ids == [10, 11, 12]
    assert option_order == {"11": [0, 1, 2, 3], "12": [0, 1]}


def test_presentation_order_with_shuffle_covers_every_item():
    question_ids, option_order = build_presentation_order(
        _questions(), shuffle_questions=True, shuffle_options=True, rng=random.Random(3)
    )
    assert sorted(question_ids) == [10, 11, 12]
    assert sorted(option_order["11"]) == [0, 1, 2, 3]
    assert sorted(option_order["12"]) == [0, 1]
    assert "10" not in option_order


def test_apply_permutation_moves_text_not_content():
    assert apply_permutation(["a", "b", "c"], [2, 0, 1]) == ["c", "a", "b"]


def test_apply_permutation_ignores_stale_order():
    # The option list grew after the order was fixed.
    assert apply_permutation(["a", "b", "c"], [1, 0]) == ["a", "b", "c"]
    assert apply_permutation(["a", "b"], None) == ["a", "b"]
