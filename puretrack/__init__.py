"""PureTrack water-quality alerting core.

Detects threshold breaches and abnormal trends in sensor readings,
folds the resulting alerts into per-recipient daily digests, and
delivers those digests on a schedule until they are acknowledged.
"""

__version__ = "0.1.0"
