import numpy as np
import pandas as pd
import pytest

from schooleffort import ModelConfig, run_pipeline
from schooleffort.counterfactual import predict_counterfactual
from schooleffort.engine import estimate
from schooleffort.errors import DegenerateSubsample, InvalidEffortDomain


@pytest.fixture(scope="module")
def result():
    return run_pipeline(ModelConfig(n_base=500, replicate=10, seed=2))


def _t(df, t):
    return df.loc[df["t"] == t]


def test_pinned_structural_coefficients(result):
    s = result.static.school.coef()
    d = result.dynamic.school.coef()
    assert s["EMAX"] == 0.95
    assert d["EMAX"] == 0.95
    assert d["VC"] == -1.0
    assert "VC" not in s


def test_first_stages_shared_across_specifications(result):
    for stage in ("college", "success", "effort"):
        np.testing.assert_allclose(getattr(result.static, stage).beta, getattr(result.dynamic, stage).beta)


def test_college_index_tracks_true_payoff(result):
    truth = _t(result.truth, 1)
    psi = _t(result.dynamic.predictions, 1)["PSI"].to_numpy()
    assert np.mean(np.abs(psi - truth["college_payoff"].to_numpy())) < 0.75


def test_predicted_series_respect_dropout(result):
    for m in (result.static, result.dynamic):
        p = m.predictions
        w = p.pivot(index="id", columns="t", values="SCHOOL")
        s = p.pivot(index="id", columns="t", values="SUCCESS")
        assert np.all(w[2] <= w[1] + 1e-15)
        assert np.all(s[1] <= w[1] + 1e-15)
        assert np.all(s[2] == 0.0)
        wc = p.pivot(index="id", columns="t", values="SCHOOL_COUNTER")
        assert np.all(wc[2] <= wc[1] + 1e-15)
        assert np.all(p["Y_COUNTER"] >= 0.0)


def test_dynamic_recovers_cost_terms(result):
    p = result.dynamic.predictions
    y = p["Y"].to_numpy()
    np.testing.assert_allclose(p["VC"], p["MC"] * y)
    np.testing.assert_allclose(p["MC"], 0.95 * np.log1p(np.exp(p["PSI"])) / (1.0 + y) ** 2)
    # FC is minus the free part of the schooling index
    b = result.dynamic.school.coef()
    np.testing.assert_allclose(p["FC"], -(b["const"] + b["white"] * p["white"] + b["south"] * p["south"]))


def test_only_dynamic_adjusts_effort(result):
    ps = result.static.predictions
    pd_ = result.dynamic.predictions
    np.testing.assert_array_equal(ps["Y_COUNTER"], ps["Y"])
    np.testing.assert_array_equal(ps["PHI_COUNTER"], ps["PHI"])
    assert np.all(pd_["Y_COUNTER"] < pd_["Y"])
    assert np.all(pd_["PHI_COUNTER"] < pd_["PHI"])


def test_static_overpredicts_success_under_rationing(result):
    s = _t(result.static.predictions, 1)["SUCCESS_COUNTER"].mean()
    d = _t(result.dynamic.predictions, 1)["SUCCESS_COUNTER"].mean()
    assert s > d


@pytest.mark.parametrize("spec", ["static", "dynamic"])
def test_no_rationing_reproduces_status_quo(result, spec):
    m = predict_counterfactual(estimate(result.observed, specification=spec), rationing=1.0)
    p = m.predictions
    for c in ("Y", "PHI", "EMAX", "HS_PR", "SCHOOL", "SUCCESS"):
        np.testing.assert_allclose(p[f"{c}_COUNTER"], p[c], rtol=1e-10, atol=1e-12)
    if spec == "dynamic":
        np.testing.assert_allclose(p["VC_COUNTER"], p["VC"], rtol=1e-10, atol=1e-12)


def test_counterfactual_enrollment_gate(result):
    m = predict_counterfactual(estimate(result.observed, specification="dynamic"), hold_enrollment_fixed=False)
    p = _t(m.predictions, 1)
    np.testing.assert_allclose(p["SUCCESS_COUNTER"], p["HS_PR_COUNTER"] * p["PHI_COUNTER"])


def test_series_exposes_every_named_column(result):
    series = result.series()
    assert len(series) == len(result.truth)
    for c in ("effort", "effort_counter", "emax_counter", "school_counter", "success_counter"):
        assert c in series.columns
    for spec in ("static", "dynamic"):
        for c in ("PHI", "Y", "PSI", "EMAX", "SCHOOL", "SUCCESS"):
            assert f"{spec}_{c}" in series.columns
            assert f"{spec}_{c}_COUNTER" in series.columns or c == "PSI"
    assert series.shape[1] >= 40


def test_idempotent_runs():
    cfg = ModelConfig(n_base=200, replicate=3, seed=9)
    a = run_pipeline(cfg).series().to_csv(index=False)
    b = run_pipeline(cfg).series().to_csv(index=False)
    assert a == b


def test_unknown_specification(result):
    with pytest.raises(ValueError):
        estimate(result.observed, specification="semi-dynamic")


def test_nobody_graduates_is_degenerate(result):
    obs = result.observed.assign(success=0)
    with pytest.raises(DegenerateSubsample) as ei:
        estimate(obs, specification="static")
    assert ei.value.stage == "college"


def test_zero_effort_enrollee_rejected(result):
    obs = result.observed.copy()
    i = obs.index[(obs["t"] == 1) & (obs["school"] == 1)][0]
    obs.loc[i, "effort"] = 0.0
    with pytest.raises(InvalidEffortDomain):
        estimate(obs, specification="dynamic")


def test_observed_panel_validation(result):
    with pytest.raises(KeyError):
        estimate(result.observed.drop(columns=["effort"]))
    with pytest.raises(ValueError):
        estimate(result.observed.assign(school=2))
    with pytest.raises(ValueError):
        estimate(result.observed.loc[result.observed["t"] == 1])


@pytest.mark.parametrize("seed", [3, 4, 5, 6, 8, 9, 13, 16])
def test_small_panels_fit_every_stage(seed):
    res = run_pipeline(ModelConfig(n_base=200, replicate=3, seed=seed))
    for m in (res.static, res.dynamic):
        assert m.school.Q["converged"]
        assert np.all(np.isfinite(m.school.beta))


@pytest.mark.parametrize("hold", [True, False])
def test_static_success_follows_counterfactual_enrollment(result, hold):
    m = predict_counterfactual(estimate(result.observed, specification="static"), hold_enrollment_fixed=hold)
    p = _t(m.predictions, 1)
    np.testing.assert_allclose(p["SUCCESS_COUNTER"], p["HS_PR_COUNTER"] * p["PHI"])
    assert p["SUCCESS_COUNTER"].mean() < p["SUCCESS"].mean()


def test_dynamic_success_holds_status_quo_enrollment(result):
    p = _t(result.dynamic.predictions, 1)
    np.testing.assert_allclose(p["SUCCESS_COUNTER"], p["HS_PR"] * p["PHI_COUNTER"])


def test_extra_covariate_reaches_every_stage():
    rng = np.random.default_rng(11)
    n = 400
    base = pd.DataFrame({
        "white": (rng.random(n) < 0.5).astype(int),
        "south": (rng.random(n) < 0.5).astype(int),
        "urban": (rng.random(n) < 0.5).astype(int),
    })
    cfg = ModelConfig(n_base=n, replicate=3, seed=5, covariates=("white", "south", "urban"))
    res = run_pipeline(cfg, base=base)
    assert "urban" in res.observed.columns
    for stage in ("college", "success", "effort", "school"):
        assert "urban" in getattr(res.dynamic, stage).names


def test_engine_module_is_documented():
    import schooleffort.engine

    assert schooleffort.engine.__doc__ is not None
    assert "CCP estimation" in schooleffort.engine.__doc__
