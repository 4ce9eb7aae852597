"""
Classifiers module: vision backends that score images.

This module contains:
- local_nsfw.py: Offline ONNX NSFW model (five probability classes)
- google_vision.py: Google Cloud Vision SafeSearch (ordinal likelihoods)
- rekognition.py: AWS Rekognition moderation labels (label + confidence)

Classifiers only produce provider-native predictions. Thresholds and the
mapping to ModerationResult live in photoguard.providers.
"""

from photoguard.classifiers.base import RiskClassifier
from photoguard.classifiers.google_vision import GoogleVisionClassifier, to_risk_level
from photoguard.classifiers.local_nsfw import (
    DEFAULT_CLASS_ORDER,
    LocalNsfwClassifier,
    preprocess,
)
from photoguard.classifiers.rekognition import RekognitionClassifier

__all__ = [
    "RiskClassifier",
    "LocalNsfwClassifier",
    "GoogleVisionClassifier",
    "RekognitionClassifier",
    "DEFAULT_CLASS_ORDER",
    "preprocess",
    "to_risk_level",
]
