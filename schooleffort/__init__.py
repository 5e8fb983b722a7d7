"""Two-period schooling/effort model: simulation, CCP estimation, rationing counterfactual."""

from .configs import ModelConfig, Primitives
from .counterfactual import predict_counterfactual
from .engine import EstimatedModel, estimate, estimate_dynamic, estimate_static
from .errors import ConstraintMismatch, DegenerateSubsample, FitFailure, InvalidEffortDomain
from .runner import PipelineResult, run_pipeline

__all__ = [
    "ModelConfig",
    "Primitives",
    "EstimatedModel",
    "estimate",
    "estimate_static",
    "estimate_dynamic",
    "predict_counterfactual",
    "PipelineResult",
    "run_pipeline",
    "FitFailure",
    "DegenerateSubsample",
    "ConstraintMismatch",
    "InvalidEffortDomain",
]
