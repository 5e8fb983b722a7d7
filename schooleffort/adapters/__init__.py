from __future__ import annotations

from .base import BaseAdapter, FittedModel, build_X
from .logit import LogitAdapter
from .ols import OLSAdapter


__all__ = [
    "BaseAdapter",
    "FittedModel",
    "build_X",
    # adapters
    "LogitAdapter",
    "OLSAdapter",
]
