"""Exceptions raised by the solver and the CCP stages.

None of these are recoverable within a run: a stage that fails leaves the
comparison between specifications undefined, so they propagate to the caller.
"""

from __future__ import annotations


class FitFailure(ValueError):
    """A regression/logit stage could not be fitted."""

    def __init__(self, msg: str, stage: str = "", subsample: str = ""):
        self.stage = str(stage)
        self.subsample = str(subsample)
        where = f"[{self.stage}" + (f" | {self.subsample}" if self.subsample else "") + "] " if self.stage else ""
        super().__init__(where + msg)


class DegenerateSubsample(FitFailure):
    """Filtered rows are empty, the outcome does not vary, or the design is rank-deficient."""


class ConstraintMismatch(FitFailure):
    """Pinned coefficients cannot be honoured by the fit."""


class InvalidEffortDomain(ValueError):
    """Effort or marginal cost outside the domain of the closed-form solution."""
