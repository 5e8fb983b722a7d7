from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Sequence

DISCOUNT = 0.95

@dataclass(frozen=True)
class Primitives:
    """Coefficients mapping covariates to the true structural primitives.

    fixed_cost     = fc0 + fc_white*white + fc_south*south
    college_payoff = psi0 + psi_white*white + psi_south*south
    marginal_cost  = exp(mc0 + mc_white*white + mc_south*south)
    """
    fc0: float = 1.0
    fc_white: float = -1.0
    fc_south: float = 0.0

    psi0: float = 2.5
    psi_white: float = 1.0
    psi_south: float = -0.5

    mc0: float = -0.5
    mc_white: float = -1.5
    mc_south: float = 0.5

@dataclass
class ModelConfig:
    # Sample construction
    n_base: int = 500
    replicate: int = 10
    white_share: float = 0.5
    south_share: float = 0.5
    seed: int = 0

    # Model
    rationing: float = 0.5
    discount: float = DISCOUNT
    covariates: Sequence[str] = ("white", "south")
    primitives: Primitives = field(default_factory=Primitives)
    # True-model and dynamic counterfactual success is gated on status-quo
    # enrollment when True.
    hold_enrollment_fixed: bool = True

    # IRLS knobs for the logit stages
    max_iter: int = 100
    tol: float = 1e-10

    outdir: str = "outputs"
    exp_id: Optional[str] = None

    def validate(self) -> "ModelConfig":
        if int(self.n_base) < 1 or int(self.replicate) < 1:
            raise ValueError("n_base and replicate must be >= 1")
        if not (0.0 < float(self.rationing) <= 1.0):
            raise ValueError("rationing must be in (0,1]")
        if not (0.0 < float(self.discount) < 1.0):
            raise ValueError("discount must be in (0,1)")
        for name in ("white_share", "south_share"):
            v = float(getattr(self, name))
            if not (0.0 <= v <= 1.0):
                raise ValueError(f"{name} must be in [0,1]")
        if len(tuple(self.covariates)) == 0:
            raise ValueError("covariates must be non-empty")
        return self
