"""Tests for the pure name-drawing function."""

import itertools
import random
from collections import Counter

import pytest

from wishlist_santa.services.assignments import DrawError, generate_assignments


def _is_derangement(ids, pairs):
    givers = [g for g, _ in pairs]
    receivers = [r for _, r in pairs]
    return (
        sorted(givers) == sorted(ids)
        and sorted(receivers) == sorted(ids)
        and all(g != r for g, r in pairs)
    )


@pytest.mark.parametrize("size", [2, 3, 4, 5, 8, 13, 30])
def test_every_giver_gets_someone_else(size):
    ids = list(range(100, 100 + size))
    pairs = generate_assignments(ids, rng=random.Random(size))

    assert _is_derangement(ids, pairs)
    assert [g for g, _ in pairs] == ids  # givers keep input order


def test_two_people_simply_swap():
    assert generate_assignments(["A", "B"], rng=random.Random(3)) == [("A", "B"), ("B", "A")]


def test_three_people_form_a_single_cycle():
    cycles = {
        (("A", "B"), ("B", "C"), ("C", "A")),
        (("A", "C"), ("B", "A"), ("C", "B")),
    }
    seen = set()
    for seed in range(40):
        seen.add(tuple(generate_assignments(["A", "B", "C"], rng=random.Random(seed))))

    assert seen == cycles


def test_same_seed_same_draw():
    ids = [1, 2, 3, 4, 5, 6]
    assert generate_assignments(ids, rng=random.Random(123)) == generate_assignments(ids, rng=random.Random(123))


def test_draws_are_roughly_uniform_over_derangements():
    ids = [1, 2, 3, 4]
    valid = [
        tuple(zip(ids, perm))
        for perm in itertools.permutations(ids)
        if all(a != b for a, b in zip(ids, perm))
    ]
    assert len(valid) == 9

    rng = random.Random(2024)
    trials = 9000
    counts = Counter(tuple(generate_assignments(ids, rng=rng)) for _ in range(trials))

    assert set(counts) == set(valid)
    expected = trials / len(valid)
    # ~30 standard deviation per bucket; 150 is a 5-sigma band
    for outcome in valid:
        assert abs(counts[outcome] - expected) < 150, counts


def test_fewer_than_two_participants_is_an_error():
    with pytest.raises(DrawError):
        generate_assignments([1])
    with pytest.raises(DrawError):
        generate_assignments([])


def test_duplicate_ids_are_rejected():
    with pytest.raises(DrawError):
        generate_assignments([1, 2, 2])


def test_gives_up_after_max_attempts():
    class StuckRandom(random.Random):
        def shuffle(self, x):
            pass

    with pytest.raises(DrawError):
        generate_assignments([1, 2, 3], rng=StuckRandom(), max_attempts=5)
