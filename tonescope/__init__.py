"""
ToneScope - Audio Emotion Analyzer

Loads a local audio clip, plays it back with progress reporting and
classifies its dominant emotional tone behind a pluggable classifier.
"""

__version__ = "1.0.0"
__author__ = "Audio Analysis Team"
