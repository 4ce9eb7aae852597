"""
PhotoGuard: content moderation for user-submitted bar photos

Screens drink photos through a pluggable set of vision backends (a local
NSFW model, Google Cloud Vision, AWS Rekognition) with a fallback chain,
and gates photo submissions on the verdict.
"""

__version__ = "0.1.0"
