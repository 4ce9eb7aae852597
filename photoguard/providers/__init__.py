"""
Providers module: adapters that turn classifier output into verdicts.

This module contains:
- base.py: ProviderAdapter (enable check, image fetch, classify, evaluate)
- local_nsfw.py: thresholds for the offline model (strictest)
- google_vision.py: thresholds for SafeSearch likelihoods
- aws_rekognition.py: keyword buckets and thresholds for Rekognition labels
"""

from photoguard.providers.aws_rekognition import AWSRekognitionAdapter, categorize
from photoguard.providers.base import ProviderAdapter
from photoguard.providers.google_vision import RISK_SCORES, GoogleVisionAdapter, risk_score
from photoguard.providers.local_nsfw import LocalNsfwAdapter

__all__ = [
    "ProviderAdapter",
    "LocalNsfwAdapter",
    "GoogleVisionAdapter",
    "AWSRekognitionAdapter",
    "RISK_SCORES",
    "risk_score",
    "categorize",
]
