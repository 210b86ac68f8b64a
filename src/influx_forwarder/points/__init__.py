"""Points - building and classifying metric observations."""

from .types import CoercionType, Point, Precision, TagList, timestamp_at_precision
from .builder import PointBuilder
from .classifier import Classification, CoercionResult, FieldClassifier, coerce

__all__ = [
    "CoercionType",
    "Point",
    "Precision",
    "TagList",
    "timestamp_at_precision",
    "PointBuilder",
    "Classification",
    "CoercionResult",
    "FieldClassifier",
    "coerce",
]
