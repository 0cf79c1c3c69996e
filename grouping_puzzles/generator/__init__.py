# Copyright (C) 2026 Lukas Huwald
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from .budget import SearchBudget
from .constraints import Constraint, MaxGroupsPerDimension, OverlapBand, UsesDimension
from .generator import (
    AttemptResult,
    AttemptStatus,
    GenerationSettings,
    GenerationStats,
    Generator,
    SearchState,
)

__all__ = [
    "Generator",
    "GenerationSettings",
    "GenerationStats",
    "AttemptResult",
    "AttemptStatus",
    "SearchState",
    "SearchBudget",
    "Constraint",
    "OverlapBand",
    "UsesDimension",
    "MaxGroupsPerDimension",
]
