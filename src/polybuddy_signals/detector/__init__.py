"""Scoring layer - Feature extraction and market classifiers."""

from polybuddy_signals.detector.behavior import classify_behavior
from polybuddy_signals.detector.drivers import extract_drivers
from polybuddy_signals.detector.exposure import classify_exposure, summarize_exposure
from polybuddy_signals.detector.features import extract_behavior_features, extract_flow_features
from polybuddy_signals.detector.flow_guard import classify_flow
from polybuddy_signals.detector.models import (
    BehaviorFeatures,
    BehaviorProfile,
    ExposureClassification,
    FlowFeatures,
    FlowProfile,
    ParticipationProfile,
    ParticipationResult,
    ResolutionDrivers,
)
from polybuddy_signals.detector.participation import ParticipationScorer, score_participation

__all__ = [
    "BehaviorFeatures",
    "BehaviorProfile",
    "ExposureClassification",
    "FlowFeatures",
    "FlowProfile",
    "ParticipationProfile",
    "ParticipationResult",
    "ParticipationScorer",
    "ResolutionDrivers",
    "classify_behavior",
    "classify_exposure",
    "classify_flow",
    "extract_behavior_features",
    "extract_drivers",
    "extract_flow_features",
    "score_participation",
    "summarize_exposure",
]
