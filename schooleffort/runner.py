from __future__ import annotations

import argparse
import logging
import os
import sys
import time
import traceback
from dataclasses import asdict, dataclass, replace
from typing import List, Optional

import numpy as np
import pandas as pd

from .configs import ModelConfig
from .counterfactual import predict_counterfactual
from .dgp import build_panel, make_base_sample
from .engine import EstimatedModel, estimate
from .report import counterfactual_table, ensure_dir, save_csv_file, save_json_file, summary_by_period
from .structural.simulate import observed_panel, simulate_choices

logger = logging.getLogger(__name__)


def _tb1(ex: BaseException) -> str:
    s = "".join(traceback.format_exception_only(type(ex), ex)).strip()
    return s.splitlines()[0] if s else repr(ex)


@dataclass
class PipelineResult:
    config: ModelConfig
    truth: pd.DataFrame
    observed: pd.DataFrame
    static: EstimatedModel
    dynamic: EstimatedModel

    def series(self) -> pd.DataFrame:
        """Truth columns plus static_*/dynamic_* predictions, one row per (id, t)."""
        keys = ["id", "t"]
        out = self.truth.drop(columns=["ev01", "ev11", "ev02", "ev12", "eta", "unif"])
        for m in (self.static, self.dynamic):
            pred = m.predictions.drop(columns=list(m.covariates))
            pred = pred.rename(columns={c: f"{m.specification}_{c}" for c in pred.columns if c not in keys})
            out = out.merge(pred, on=keys, how="left", validate="one_to_one")
        return out

    def coefficients(self) -> pd.DataFrame:
        return pd.concat([self.static.coefficients(), self.dynamic.coefficients()], ignore_index=True)


def run_pipeline(cfg: ModelConfig, base: Optional[pd.DataFrame] = None) -> PipelineResult:
    """Simulate, estimate both specifications, and predict the rationing counterfactual.

    All randomness comes from one generator seeded with cfg.seed. Stage failures
    (FitFailure, InvalidEffortDomain) propagate.
    """
    cfg.validate()
    rng = np.random.default_rng(int(cfg.seed))
    if base is None:
        base = make_base_sample(cfg.n_base, rng, white_share=cfg.white_share, south_share=cfg.south_share)

    # white and south drive the primitives; any extra estimation covariates ride along
    carried = tuple(dict.fromkeys(("white", "south") + tuple(cfg.covariates)))
    panel = build_panel(base, rng, replicate=cfg.replicate, covariates=carried)
    truth = simulate_choices(
        panel,
        params=cfg.primitives,
        rationing=cfg.rationing,
        discount=cfg.discount,
        hold_enrollment_fixed=cfg.hold_enrollment_fixed,
    )
    obs = observed_panel(truth, cfg.covariates)

    models = {}
    for spec in ("static", "dynamic"):
        m = estimate(obs, specification=spec, covariates=cfg.covariates, discount=cfg.discount,
                     max_iter=cfg.max_iter, tol=cfg.tol)
        models[spec] = predict_counterfactual(m, rationing=cfg.rationing,
                                              hold_enrollment_fixed=cfg.hold_enrollment_fixed)

    return PipelineResult(config=cfg, truth=truth, observed=obs, static=models["static"], dynamic=models["dynamic"])


def save_outputs(result: PipelineResult, exp_root: str, plot: bool = True) -> None:
    ensure_dir(exp_root)
    series = result.series()
    save_csv_file(os.path.join(exp_root, "series.csv"), series)
    save_csv_file(os.path.join(exp_root, "summary_by_period.csv"), summary_by_period(series))
    save_csv_file(os.path.join(exp_root, "coefficients.csv"), result.coefficients())
    cf = counterfactual_table(series)
    save_csv_file(os.path.join(exp_root, "counterfactual.csv"), cf)
    save_json_file(os.path.join(exp_root, "config.json"), asdict(result.config))
    if plot:
        from .plotting import plot_counterfactual_to

        plot_counterfactual_to(os.path.join(exp_root, "counterfactual.png"), cf)


def parse_args(argv: List[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="schooleffort.runner")

    p.add_argument("--seed", type=int, default=0)
    p.add_argument("--n_base", type=int, default=500, help="Individuals in the base sample")
    p.add_argument("--replicate", type=int, default=10, help="Copies of the base sample in the panel")
    p.add_argument("--rationing", type=float, default=0.5, help="College admission rate in the counterfactual")
    p.add_argument("--covariates", nargs="+", default=["white", "south"], help="Regressors of every CCP stage")
    p.add_argument("--counterfactual_enrollment", action="store_true",
                   help="Gate counterfactual success on counterfactual (not status-quo) enrollment")
    p.add_argument("--no_plot", action="store_true")

    p.add_argument("--out", type=str, default="outputs", help="Output root directory")
    p.add_argument("-v", "--verbose", action="store_true")

    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cfg = replace(
        ModelConfig(),
        seed=args.seed,
        n_base=args.n_base,
        replicate=args.replicate,
        rationing=args.rationing,
        covariates=tuple(args.covariates),
        hold_enrollment_fixed=not args.counterfactual_enrollment,
        outdir=args.out,
    )
    cfg = replace(cfg, exp_id=f"seed{cfg.seed}_{time.strftime('%Y%m%d_%H%M%S')}")
    exp_root = os.path.join(cfg.outdir, cfg.exp_id)

    try:
        result = run_pipeline(cfg)
    except (ValueError, KeyError) as ex:  # FitFailure and InvalidEffortDomain are ValueErrors
        logger.error("pipeline failed: %s", _tb1(ex))
        return 1

    save_outputs(result, exp_root, plot=not args.no_plot)
    print(counterfactual_table(result.series()).to_string(index=False))
    print(exp_root)
    return 0


if __name__ == "__main__":
    sys.exit(main())
