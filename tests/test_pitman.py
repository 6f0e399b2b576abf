"""Tests for the Pitman maximum-likelihood estimator."""

import math
import warnings

import pytest
import numpy as np
from uniqueness_risk import pitman
from uniqueness_risk.histogram import EquivalenceClassHistogram, SampleStats
from uniqueness_risk.newton import NewtonSolution, NonConvergenceError, numerical_jacobian
from uniqueness_risk.pitman import (
    fit_pitman,
    pitman_initial_guess,
    pitman_jacobian,
    pitman_log_uniques_total,
    pitman_risk,
    pitman_risk_from_parameters,
    pitman_score,
    pitman_uniques_total,
)
from uniqueness_risk.results import UndefinedModelError


def test_initial_guess_closed_form(small_histogram):
    """{1: 5, 2: 1}: c = 20, theta = -120 / 20, alpha = 42 / 42."""
    theta, alpha = pitman_initial_guess(SampleStats.from_histogram(small_histogram, 0.05))
    assert theta == pytest.approx(-6.0)
    assert alpha == pytest.approx(1.0)


def test_initial_guess_needs_pairs(uniques_only_histogram):
    """Without classes of size two the guess is undefined."""
    with pytest.raises(UndefinedModelError):
        pitman_initial_guess(SampleStats.from_histogram(uniques_only_histogram, 0.1))


def test_initial_guess_vanishing_denominator():
    """No uniques makes the theta denominator zero."""
    stats = SampleStats.from_histogram(EquivalenceClassHistogram({2: 1}), 0.1)
    with pytest.raises(UndefinedModelError):
        pitman_initial_guess(stats)


def test_score_vector():
    """Score equations for {1: 2, 2: 1} at theta=1, alpha=0.5."""
    h = EquivalenceClassHistogram({1: 2, 2: 1})
    score = pitman_score([1.0, 0.5], h)
    # 1/1.5 + 1/2 - (1/2 + 1/3 + 1/4);  1/1.5 + 2/2 - 1/(1 - 0.5)
    np.testing.assert_allclose(score, [1 / 1.5 + 0.5 - (0.5 + 1 / 3 + 0.25), 1 / 1.5 + 1.0 - 2.0])


def test_jacobian_values():
    """Second derivatives for {1: 2, 2: 1} at theta=1, alpha=0.5."""
    h = EquivalenceClassHistogram({1: 2, 2: 1})
    jac = pitman_jacobian([1.0, 0.5], h)
    d_tt = (1 / 4 + 1 / 9 + 1 / 16) - (1 / 2.25 + 1 / 4)
    d_ta = -(1 / 2.25 + 2 / 4)
    d_aa = -(1 / 2.25 + 4 / 4) - 1 / 0.25
    np.testing.assert_allclose(jac, [[d_tt, d_ta], [d_ta, d_aa]])


def test_jacobian_is_derivative_of_score(pitman_histogram):
    """Analytic Jacobian agrees with differentiating the score numerically."""
    x = np.array([2.0, 0.4])
    numeric = numerical_jacobian(lambda p: pitman_score(p, pitman_histogram), x)
    np.testing.assert_allclose(pitman_jacobian(x, pitman_histogram), numeric, rtol=1e-5, atol=1e-6)


def test_fit_solves_score_equations(pitman_histogram):
    """The fitted parameters zero the score vector and lie in the model domain."""
    fit = fit_pitman(pitman_histogram, 0.05)
    np.testing.assert_allclose(pitman_score([fit.theta, fit.alpha], pitman_histogram), [0.0, 0.0], atol=1e-5)
    assert 0 < fit.alpha < 1
    assert fit.theta > -fit.alpha
    assert fit.iterations >= 1


def test_pitman_risk_in_unit_interval(pitman_histogram):
    """Risk is total uniques / N and lies in [0, 1]."""
    result = pitman_risk(pitman_histogram, 0.05)
    assert result.defined
    assert 0.0 <= result.value <= 1.0

    fit = fit_pitman(pitman_histogram, 0.05)
    stats = SampleStats.from_histogram(pitman_histogram, 0.05)
    expected = pitman_uniques_total(fit.theta, fit.alpha, stats.population_size) / stats.population_size
    assert result.value == pytest.approx(expected)


def test_uniques_total_uses_log_gamma():
    """Large theta would overflow a direct gamma ratio."""
    total = pitman_uniques_total(500.0, 0.5, 1e6)
    # Gamma(501) / Gamma(500.5) ~ sqrt(500.25)
    assert total == pytest.approx(math.sqrt(500.25) * 1e3, rel=1e-3)


def test_uniques_total_nan_for_zero_alpha():
    """alpha = 0 leaves the number of population uniques undefined."""
    assert math.isnan(pitman_uniques_total(2.0, 0.0, 1000.0))


def test_uniques_total_nan_outside_domain():
    """theta + alpha <= 0 is outside the model."""
    assert math.isnan(pitman_uniques_total(-1.0, 0.5, 1000.0))


def test_risk_from_zero_alpha_is_undefined(small_histogram):
    """A zero alpha never turns into a silent zero risk."""
    stats = SampleStats.from_histogram(small_histogram, 0.05)
    result = pitman_risk_from_parameters(2.0, 0.0, stats)
    assert not result.defined
    assert math.isnan(result.as_float())


def test_solver_returning_zero_alpha(monkeypatch, small_histogram):
    """If the solver lands on alpha = 0 the model result is undefined."""
    monkeypatch.setattr(
        pitman, "newton_raphson",
        lambda *args, **kwargs: NewtonSolution(x=np.array([2.0, 0.0]), iterations=1),
    )
    result = pitman_risk(small_histogram, 0.05)
    assert not result.defined
    assert "alpha" in result.reason


def test_solver_failure_is_undefined(monkeypatch, small_histogram):
    """Solver errors become an undefined result, not an exception."""
    def fail(*args, **kwargs):
        raise NonConvergenceError("no convergence")

    monkeypatch.setattr(pitman, "newton_raphson", fail)
    result = pitman_risk(small_histogram, 0.05)
    assert not result.defined
    assert result.reason == "no convergence"


def test_missing_pairs_is_undefined(uniques_only_histogram):
    """c2 = 0 is reported as undefined rather than raising."""
    result = pitman_risk(uniques_only_histogram, 0.05)
    assert not result.defined
    assert result.model == "pitman"


def test_small_histogram_outcome(small_histogram):
    """{1: 5, 2: 1}: the guess theta = -6 hits the pole theta + 6 = 0, so the model is undefined."""
    result = pitman_risk(small_histogram, 0.05)
    assert not result.defined
    assert math.isnan(result.as_float())
    assert "not finite" in result.reason


def test_uniques_total_nan_below_gamma_pole():
    """theta + 1 <= 0 has no log-gamma even when theta + alpha > 0."""
    assert math.isnan(pitman_uniques_total(-1.5, 2.0, 100.0))
    stats = SampleStats.from_histogram({1: 5, 2: 1}, 0.05)
    result = pitman_risk_from_parameters(-1.5, 2.0, stats)
    assert not result.defined
    assert "gamma" in result.reason


def test_uniques_total_overflow_is_nan():
    """N^alpha beyond the float range gives NaN instead of raising."""
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        assert math.isnan(pitman_uniques_total(1.0, 400.0, 1170.0))


def test_risk_overflow_is_undefined():
    """An overflowing number of population uniques is reported as such."""
    stats = SampleStats.from_histogram({1: 50, 2: 8, 3: 17}, 0.1)
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        result = pitman_risk_from_parameters(1.0, 400.0, stats)
    assert not result.defined
    assert "overflows" in result.reason


def test_log_uniques_total_matches_total():
    """The log-domain total exponentiates to the reported total."""
    log_total = pitman_log_uniques_total(2.0, 0.5, 1e4)
    assert math.exp(log_total) == pytest.approx(pitman_uniques_total(2.0, 0.5, 1e4))
    assert math.isnan(pitman_log_uniques_total(-1.5, 2.0, 100.0))


def test_shared_stats_are_used(monkeypatch, small_histogram):
    """A precomputed SampleStats is used instead of being rebuilt."""
    stats = SampleStats.from_histogram(small_histogram, 0.05)

    def rebuild(*args, **kwargs):
        raise AssertionError("SampleStats rebuilt")

    monkeypatch.setattr(pitman.SampleStats, "from_histogram", rebuild)
    monkeypatch.setattr(
        pitman, "newton_raphson",
        lambda *args, **kwargs: NewtonSolution(x=np.array([1.0, 0.5]), iterations=1),
    )
    result = pitman_risk(small_histogram, 0.05, stats=stats)
    assert result.defined
    assert result.value == pytest.approx(pitman_uniques_total(1.0, 0.5, 140.0) / 140.0)
