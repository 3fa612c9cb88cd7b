import pytest

from civicscore.common.scoring import ScoringPolicy, compose, percentile_scores

LOWER_BEST = ScoringPolicy(direction="lower_is_better", zero_means="best")
HIGHER_WORST = ScoringPolicy(direction="higher_is_better", zero_means="worst")


def test_lower_is_better_percentiles():
    scores = percentile_scores({"a": 10.0, "b": 20.0, "c": 30.0}, LOWER_BEST)
    assert scores == {"a": 100.0, "b": 66.7, "c": 33.3}


def test_higher_is_better_percentiles():
    scores = percentile_scores({"a": 10.0, "b": 20.0, "c": 30.0}, HIGHER_WORST)
    assert scores == {"a": 33.3, "b": 66.7, "c": 100.0}


def test_tied_values_share_a_score():
    scores = percentile_scores({"a": 10.0, "b": 10.0, "c": 20.0}, LOWER_BEST)
    assert scores["a"] == scores["b"] == 100.0
    assert scores["c"] == 33.3


def test_zero_is_excluded_from_the_ranked_population():
    scores = percentile_scores({"quiet": 0.0, "b": 5.0, "c": 15.0}, LOWER_BEST)
    assert scores == {"quiet": 100.0, "b": 100.0, "c": 50.0}

    scores = percentile_scores({"idle": 0.0, "b": 5.0, "c": 15.0}, HIGHER_WORST)
    assert scores == {"idle": 0.0, "b": 50.0, "c": 100.0}


def test_zero_as_missing_and_ranked_policies():
    no_data = ScoringPolicy(direction="higher_is_better", zero_means="no_data")
    assert percentile_scores({"a": 0.0, "b": 50000.0}, no_data) == {"a": None, "b": 100.0}

    ranked = ScoringPolicy(direction="higher_is_better", zero_means="ranked")
    assert percentile_scores({"a": 0.0, "b": 40.0}, ranked) == {"a": 50.0, "b": 100.0}


def test_missing_values_score_none():
    assert percentile_scores({"a": None, "b": 3.0}, LOWER_BEST) == {"a": None, "b": 100.0}


def test_zero_flags_override_the_value_test():
    scores = percentile_scores({"a": 0.4, "b": 2.0}, LOWER_BEST, zero_flags={"a": True, "b": False})
    assert scores == {"a": 100.0, "b": 100.0}


def test_zero_count_scores_by_policy_when_rate_is_missing():
    flags = {"industrial": True, "b": False}
    assert percentile_scores({"industrial": None, "b": 5.0}, LOWER_BEST, zero_flags=flags) == {
        "industrial": 100.0,
        "b": 100.0,
    }
    assert percentile_scores({"industrial": None, "b": 5.0}, HIGHER_WORST, zero_flags=flags)["industrial"] == 0.0


def test_missing_rate_without_zero_count_scores_none():
    assert percentile_scores({"a": None, "b": 5.0}, LOWER_BEST, zero_flags={"a": False, "b": False})["a"] is None
    assert percentile_scores({"a": None, "b": 5.0}, LOWER_BEST, zero_flags={"b": False})["a"] is None


def test_percentile_scores_stay_within_bounds():
    values = {f"n{idx}": float(idx * 3 % 7) for idx in range(20)}
    for score in percentile_scores(values, LOWER_BEST).values():
        assert 0.0 <= score <= 100.0


def test_compose_renormalises_over_present_scores():
    assert compose({"safety": 80.0, "income": None}, {"safety": 3, "income": 1}) == 80.0
    assert compose({"safety": 100.0, "income": 0.0}, {"safety": 3, "income": 1}) == 75.0


def test_compose_returns_none_without_weighted_inputs():
    assert compose({"a": None, "b": None}, {"a": 1, "b": 1}) is None
    assert compose({"a": 50.0}, {"a": 0}) is None


@pytest.mark.parametrize("scores", [{"a": 100.0, "b": 100.0}, {"a": 0.0, "b": 0.0}, {"a": 33.3, "b": 66.7}])
def test_compose_is_within_bounds(scores):
    assert 0.0 <= compose(scores, {"a": 2, "b": 1}) <= 100.0
