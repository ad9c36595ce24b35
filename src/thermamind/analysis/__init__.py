# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Cooling advice and natural-language fleet analysis."""

from thermamind.analysis.advisor import recommend_action, savings_estimate
from thermamind.analysis.gateway import (
    AnalysisError,
    AnalysisGateway,
    OpenAIAnalysisGateway,
    RuleBasedAnalysisGateway,
    get_gateway,
)

__all__ = [
    "AnalysisError",
    "AnalysisGateway",
    "OpenAIAnalysisGateway",
    "RuleBasedAnalysisGateway",
    "get_gateway",
    "recommend_action",
    "savings_estimate",
]
