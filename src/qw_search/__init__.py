"""
Quantum Walk Search Library - Production Core

This package simulates a coined quantum walk search on an n x n torus:
- walk: state, coin/scatter/oracle operators, tick, measurement, WalkSimulator
- search: hitting-time estimate and the qw / qw_signal / qw_sample drivers
"""

from .walk import (
    COIN_X,
    COIN_Y,
    WalkSimulator,
    coin,
    initial_state,
    measure,
    oracle,
    scatter_x,
    scatter_y,
    tick,
    total_probability,
)
from .search import (
    SampleParams,
    hitting_time,
    qw,
    qw_sample,
    qw_sample_one,
    qw_signal,
    run_model,
)
from . import utils

__all__ = [
    # Drivers
    "hitting_time",
    "qw",
    "qw_signal",
    "qw_sample",
    "qw_sample_one",
    "run_model",
    "SampleParams",
    # Walk
    "WalkSimulator",
    "COIN_X",
    "COIN_Y",
    "initial_state",
    "coin",
    "scatter_x",
    "scatter_y",
    "oracle",
    "tick",
    "measure",
    "total_probability",
    # Utilities
    "utils",
]
