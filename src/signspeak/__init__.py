"""
SignSpeak Gesture Recognition
==============================

Hand-landmark gesture classification for sign captioning.

Turns per-frame hand landmarks into stable, debounced sign labels.

Modules:
    - detection: Landmark / HandPose input types
    - features: Landmark normalization into feature vectors
    - recognition: Static (k-NN, logistic) and dynamic (DTW) classifiers,
      temporal smoothing, labels, fingerspelling, evaluation
    - persistence: Tagged model record codec
    - data: JSON blob store for datasets and models
    - utils: Configuration, logging, performance monitoring
"""

__version__ = "1.0.0"
__author__ = "SignSpeak Team"
