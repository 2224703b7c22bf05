# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Command risk classification."""

from gitnl.risk.classifier import (
    HIGH_RISK_PATTERNS,
    MEDIUM_RISK_PATTERNS,
    ModelRiskClassifier,
    RiskAssessment,
    RiskClassifier,
    RiskLevel,
    classify_locally,
)

__all__ = [
    "HIGH_RISK_PATTERNS",
    "MEDIUM_RISK_PATTERNS",
    "ModelRiskClassifier",
    "RiskAssessment",
    "RiskClassifier",
    "RiskLevel",
    "classify_locally",
]
