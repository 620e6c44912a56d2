"""Oracle Metrics — pure summaries over AI price predictions.

Invariants:
    - Averages over empty inputs are 0.0
    - Model versions ordered by count descending, features by avgImportance descending
    - Ties broken by name so output is deterministic
"""

from collections import defaultdict
from collections.abc import Iterable

from dynamicvault.core.price_analytics import mean


def price_factors(feature_importance: Iterable[dict]) -> list[dict]:
    """Translate prediction feature importance into price-history AI factors."""
    return [
        {
            "name": f["feature"],
            "weight": f["importance"],
            "impact": f["direction"],
        }
        for f in feature_importance
    ]


def model_version_summary(rows: Iterable[tuple[str, float]]) -> list[dict]:
    """rows: (model_version, confidence_score) per prediction."""
    grouped: dict[str, list[float]] = defaultdict(list)
    for version, confidence in rows:
        grouped[version].append(confidence)
    summary = [
        {
            "version": version,
            "count": len(scores),
            "avgConfidence": mean(scores),
        }
        for version, scores in grouped.items()
    ]
    summary.sort(key=lambda v: (-v["count"], v["version"]))
    return summary


def feature_analysis(feature_lists: Iterable[list[dict]]) -> list[dict]:
    """Average importance/direction per feature across many predictions."""
    importance: dict[str, list[float]] = defaultdict(list)
    direction: dict[str, list[float]] = defaultdict(list)
    for features in feature_lists:
        for f in features or []:
            importance[f["feature"]].append(float(f["importance"]))
            direction[f["feature"]].append(float(f["direction"]))
    analysis = [
        {
            "feature": feature,
            "avgImportance": mean(values),
            "avgDirection": mean(direction[feature]),
            "occurrences": len(values),
        }
        for feature, values in importance.items()
    ]
    analysis.sort(key=lambda f: (-f["avgImportance"], f["feature"]))
    return analysis
