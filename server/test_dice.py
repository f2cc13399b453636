"""
Test suite for the dice pool.

Covers:
- Fresh rolls
- Re-rolls keeping locked dice frozen
- Seeded pools
- Resolution helpers used for hot dice

Run with: pytest test_dice.py -v
"""

from dice import Die, DicePool, all_resolved, dice_to_dict, locked_count, rollable_count


def make_dice(values, locked=(), scored=()):
    """Build dice from face values, locking/scoring the given positions."""
    return [
        Die(value=v, available=i not in locked, scored=i in scored)
        for i, v in enumerate(values)
    ]


class TestRollAll:

    def test_six_fresh_dice(self):
        dice = DicePool().roll_all()
        assert len(dice) == 6
        for die in dice:
            assert 1 <= die.value <= 6
            assert die.available
            assert not die.scored

    def test_seeded_pools_roll_the_same(self):
        a = DicePool(seed=42)
        b = DicePool(seed=42)
        for _ in range(5):
            assert [d.value for d in a.roll_all()] == [d.value for d in b.roll_all()]

    def test_seed_is_stored(self):
        assert DicePool(seed=7).seed == 7
        assert isinstance(DicePool().seed, int)

    def test_all_faces_show_up(self):
        pool = DicePool(seed=1)
        faces = set()
        for _ in range(50):
            faces.update(d.value for d in pool.roll_all())
        assert faces == {1, 2, 3, 4, 5, 6}


class TestReroll:

    def test_locked_dice_keep_their_value(self):
        pool = DicePool(seed=3)
        existing = make_dice([1, 5, 2, 3, 4, 6], locked=(0, 1))

        for _ in range(20):
            result = pool.reroll(existing)
            assert result[0].value == 1
            assert result[1].value == 5
            assert not result[0].available
            assert not result[1].available

    def test_available_dice_reset_scored(self):
        existing = make_dice([1, 1, 1, 2, 3, 4], scored=(0, 1, 2))
        result = DicePool(seed=5).reroll(existing)
        assert all(d.available for d in result)
        assert not any(d.scored for d in result)

    def test_input_is_not_modified(self):
        existing = make_dice([2, 2, 3, 3, 4, 6], locked=(0,), scored=(1,))
        before = dice_to_dict(existing)
        DicePool(seed=9).reroll(existing)
        assert dice_to_dict(existing) == before

    def test_all_locked_returns_same_values(self):
        existing = make_dice([6, 5, 4, 3, 2, 1], locked=range(6))
        result = DicePool().reroll(existing)
        assert [d.value for d in result] == [6, 5, 4, 3, 2, 1]


class TestHelpers:

    def test_all_resolved(self):
        assert all_resolved(make_dice([1, 1, 1, 5, 5, 5], scored=range(6)))
        assert all_resolved(make_dice([1, 1, 1, 5, 5, 5], locked=(0, 1, 2), scored=(3, 4, 5)))
        assert not all_resolved(make_dice([1, 1, 1, 5, 5, 2], locked=(0, 1, 2), scored=(3, 4)))

    def test_counts(self):
        dice = make_dice([1, 5, 2, 3, 4, 6], locked=(0,), scored=(1,))
        assert locked_count(dice) == 1
        assert rollable_count(dice) == 4

    def test_die_to_dict(self):
        assert Die(value=4, available=False).to_dict() == {
            "value": 4,
            "available": False,
            "scored": False,
        }

    def test_pick_index_is_seeded(self):
        a, b = DicePool(seed=11), DicePool(seed=11)
        picks = [a.pick_index(3) for _ in range(10)]
        assert picks == [b.pick_index(3) for _ in range(10)]
        assert all(0 <= i < 3 for i in picks)
