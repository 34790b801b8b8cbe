"""Account lifecycle classification package."""

from .classifier import LifecycleClassifier, classify, is_excluded_computer, sort_results
from .codec import DecodedDate, decode_inactive_date, encode_disabled_description
from .models import AccountKind, AccountSnapshot, Action, ClassificationResult, PolicyThresholds

__all__ = [
    "AccountKind",
    "AccountSnapshot",
    "Action",
    "ClassificationResult",
    "DecodedDate",
    "LifecycleClassifier",
    "PolicyThresholds",
    "classify",
    "decode_inactive_date",
    "encode_disabled_description",
    "is_excluded_computer",
    "sort_results",
]
