import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

import numpy as np
import pandas as pd


def test_import_and_public_api():
    import schooleffort

    for name in ("run_pipeline", "estimate", "predict_counterfactual", "ModelConfig", "FitFailure"):
        assert hasattr(schooleffort, name)


def test_summary_by_period():
    from schooleffort.report import summary_by_period

    df = pd.DataFrame({"id": [0, 0, 1, 1], "t": [1, 2, 1, 2], "school": [1, 1, 0, 0], "x": [1.0, np.nan, 3.0, 4.0]})
    out = summary_by_period(df)
    assert set(out["column"]) == {"school", "x"}
    row = out[(out["column"] == "x") & (out["t"] == 2)].iloc[0]
    assert row["mean"] == 4.0
    assert row["count"] == 1
    assert out[(out["column"] == "school") & (out["t"] == 1)]["mean"].iloc[0] == 0.5


def test_runner_writes_outputs(tmp_path, capsys):
    from schooleffort.runner import main

    rc = main(["--seed", "1", "--n_base", "300", "--replicate", "3", "--out", str(tmp_path)])
    assert rc == 0

    runs = list(tmp_path.iterdir())
    assert len(runs) == 1
    for name in ("series.csv", "summary_by_period.csv", "coefficients.csv", "counterfactual.csv",
                 "config.json", "counterfactual.png"):
        assert (runs[0] / name).exists()

    cf = pd.read_csv(runs[0] / "counterfactual.csv")
    assert list(cf["outcome"]) == ["school_t1", "success_t1", "college_t2"]
    assert "dynamic_counter" in cf.columns
    assert str(runs[0]) in capsys.readouterr().out


def test_runner_reports_failure(tmp_path):
    from schooleffort.runner import main

    rc = main(["--rationing", "0", "--out", str(tmp_path), "--no_plot"])
    assert rc == 1
