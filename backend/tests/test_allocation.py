# backend/tests/test_allocation.py
import itertools

import pytest

from warikan.domain.allocation import (
    AllocationError,
    allocate,
    choose_best_mode,
    round_to_granularity,
)
from warikan.domain.models import Participant, Role, RoundingMode


def _weighted(*weights):
    return [Participant(id=f"p{i}", custom_weight=w) for i, w in enumerate(weights, start=1)]


def _amounts(result):
    return list(result.amounts_by_id.values())


def _default_party():
    return [
        Participant(id="p1", name="Tanaka", role=Role.JUNIOR, age=25),
        Participant(id="p2", name="Sato", role=Role.MID, age=34),
        Participant(id="p3", name="Suzuki", role=Role.MANAGER, age=45),
    ]


@pytest.mark.parametrize(
    "value, granularity, mode, expected",
    [
        (2666.67, 1, RoundingMode.NEAREST, 2667),
        (2666.5, 1, RoundingMode.NEAREST, 2667),
        (2666.2, 1, RoundingMode.CEIL, 2667),
        (2666.8, 1, RoundingMode.FLOOR, 2666),
        (350, 100, RoundingMode.NEAREST, 400),
        (349, 100, RoundingMode.NEAREST, 300),
        (301, 100, RoundingMode.CEIL, 400),
        (399, 100, RoundingMode.FLOOR, 300),
        (24.9, 50, RoundingMode.NEAREST, 0),
        (25, 50, RoundingMode.NEAREST, 50),
        (0, 10, RoundingMode.CEIL, 0),
    ],
)
def test_round_to_granularity(value, granularity, mode, expected):
    assert round_to_granularity(value, granularity, mode) == expected


def test_equal_weights_split_evenly():
    result = allocate(_weighted(1.0, 1.0, 1.0), 12000, 100, "nearest")
    assert _amounts(result) == [4000, 4000, 4000]
    assert result.sum_rounded == 12000


def test_uneven_weights_sum_exactly_at_one_yen():
    result = allocate(_weighted(0.8, 1.0, 1.2), 10000, 1, RoundingMode.NEAREST)
    raw = list(result.raw_by_id.values())
    assert raw == pytest.approx([2666.6667, 3333.3333, 4000.0], abs=1e-3)
    assert _amounts(result) == [2667, 3333, 4000]
    assert result.sum_rounded == 10000


def test_exempt_participant_pays_nothing():
    people = [
        Participant(id="guest", role=Role.EXEC, age=60, exempt=True),
        Participant(id="host"),
    ]
    result = allocate(people, 5000, 50, "nearest")
    assert result.amounts_by_id == {"guest": 0, "host": 5000}
    assert result.weights_by_id["guest"] == 0.0


def test_deficit_guard_never_undershoots_small_total():
    result = allocate(_weighted(1.0, 1.0, 1.0), 100, 100, "nearest")
    assert result.raw_by_id["p1"] == pytest.approx(33.333, abs=1e-3)
    assert _amounts(result) == [100, 0, 0]
    assert result.sum_rounded >= 100


def test_redistribution_takes_from_most_rounded_up():
    result = allocate(_default_party(), 12000, 100, "nearest")
    # initial 2900/4000/5200 = 12100; p2 was rounded up the most
    assert result.amounts_by_id == {"p1": 2900, "p2": 3900, "p3": 5200}
    assert result.sum_rounded == 12000


def test_redistribution_gives_to_most_rounded_down():
    result = allocate(_default_party(), 12000, 100, "floor")
    # initial 2800/3900/5100 = 11800; p1 then p3 were rounded down the most
    assert result.amounts_by_id == {"p1": 2900, "p2": 3900, "p3": 5200}


def test_deficit_guard_tops_up_largest_residual():
    result = allocate(_weighted(1.0, 1.0, 1.0), 1050, 100, "floor")
    # 300 each -> p1 gets a step (delta 50 left) -> guard picks p2 by residual then order
    assert _amounts(result) == [400, 400, 300]
    assert result.sum_rounded == 1100
    assert result.overshoot == 50


def test_ties_resolved_by_list_order():
    forward = allocate(_weighted(1.0, 1.0, 1.0), 100, 100, "floor")
    backward = allocate(list(reversed(_weighted(1.0, 1.0, 1.0))), 100, 100, "floor")
    assert forward.amounts_by_id["p1"] == 100
    assert backward.amounts_by_id["p3"] == 100
    assert list(backward.amounts_by_id) == ["p3", "p2", "p1"]


def test_empty_participants_all_zero():
    result = allocate([], 5000, 100, "nearest")
    assert result.amounts_by_id == {}
    assert result.sum_rounded == 0
    assert result.sum_raw == 0


def test_all_exempt_all_zero():
    people = [Participant(id="a", exempt=True), Participant(id="b", exempt=True)]
    result = allocate(people, 9000, 10, "ceil")
    assert result.amounts_by_id == {"a": 0, "b": 0}
    assert result.sum_rounded == 0
    assert result.sum_raw == 0


def test_zero_total_is_all_zeros():
    result = allocate(_default_party(), 0, 100, "ceil")
    assert _amounts(result) == [0, 0, 0]
    assert result.is_balanced


def test_accepts_participant_generator_as_snapshot():
    result = allocate((p for p in _default_party()), 12000, 100, "nearest")
    assert result.sum_rounded == 12000


def test_identical_inputs_give_identical_results():
    people = _default_party() + [Participant(id="p4", custom_weight=1.7)]
    first = allocate(people, 33333, 50, "nearest")
    second = allocate(people, 33333, 50, "nearest")
    assert first == second
    assert list(first.amounts_by_id) == list(second.amounts_by_id)


def test_raw_shares_are_proportional_to_weights():
    people = _default_party() + [Participant(id="p4", custom_weight=1.7)]
    result = allocate(people, 54321, 1, "nearest")
    w = result.weights_by_id
    r = result.raw_by_id
    for a, b in itertools.combinations(r, 2):
        assert r[a] / r[b] == pytest.approx(w[a] / w[b], rel=1e-9)


@pytest.mark.parametrize("total", [-1, -0.5, float("nan"), float("inf"), "100", True])
def test_invalid_total_raises(total):
    with pytest.raises(AllocationError):
        allocate(_default_party(), total, 100, "nearest")


@pytest.mark.parametrize("granularity", [0, 5, 1000, True, 10.0, 100.0])
def test_unsupported_granularity_raises(granularity):
    with pytest.raises(AllocationError):
        allocate(_default_party(), 1000, granularity, "nearest")


def test_pass_cap_stops_quietly_with_current_amounts(monkeypatch):
    monkeypatch.setattr("warikan.domain.allocation.MAX_PASSES", 0)
    result = allocate(_weighted(1.0, 1.0, 1.0), 10000, 1, "floor")
    # no redistribution pass ran, so the floor amounts stand
    assert _amounts(result) == [3333, 3333, 3333]
    assert result.sum_rounded == 9999


def test_unknown_mode_raises():
    with pytest.raises(AllocationError):
        allocate(_default_party(), 1000, 100, "up")


def test_duplicate_ids_raise():
    with pytest.raises(AllocationError):
        allocate([Participant(id="a"), Participant(id="a")], 1000, 1, "nearest")


_PARTIES = [
    _weighted(1.0),
    _weighted(0.1, 2.0),
    _weighted(0.8, 1.0, 1.2),
    _weighted(1.0, 1.0, 1.0, 1.0, 1.0, 1.0, 1.0),
    _default_party(),
    [
        Participant(id="a", role=Role.INTERN, age=22),
        Participant(id="b", exempt=True),
        Participant(id="c", role=Role.EXEC, age=55),
        Participant(id="d", custom_weight=9.0),
        Participant(id="e", role=Role.DIRECTOR),
    ],
]


@pytest.mark.parametrize("party", _PARTIES)
@pytest.mark.parametrize("granularity", [1, 10, 50, 100])
@pytest.mark.parametrize("mode", list(RoundingMode))
def test_invariants_hold_across_inputs(party, granularity, mode):
    exempt_ids = {p.id for p in party if p.exempt}
    for total in [0, 1, 49, 99, 100, 101, 999, 1234, 12000, 33333, 100001]:
        result = allocate(party, total, granularity, mode)

        assert result.sum_raw == pytest.approx(total, abs=1e-6)
        assert result.sum_rounded >= total
        assert result.sum_rounded - total < granularity or total == 0
        for pid, amount in result.amounts_by_id.items():
            assert amount >= 0
            assert amount % granularity == 0
            if pid in exempt_ids:
                assert amount == 0


def test_choose_best_mode_prefers_earlier_mode_on_tie():
    result = choose_best_mode(_default_party(), 12000, 100)
    assert result.mode is RoundingMode.FLOOR
    assert result.overshoot == 0


def test_choose_best_mode_returns_minimal_overshoot():
    party = _PARTIES[-1]
    for total in [1, 99, 1234, 33333]:
        best = choose_best_mode(party, total, 50)
        overshoots = [allocate(party, total, 50, m).overshoot for m in RoundingMode]
        assert best.overshoot == min(overshoots)
