"""
Related documents: ranks documents by the tags they share with one or more
seed documents
"""
from collections import Counter
from typing import Dict, Any, List, Optional, Iterable, Mapping


def seed_tag_counts(seed_tag_lists: Iterable[Iterable[str]]) -> Counter:
    """Multiset union of the seeds' tags.

    A tag carried by three seeds counts three times; a tag repeated inside
    one seed counts once for that seed.
    """
    counts = Counter()
    for tags in seed_tag_lists:
        counts.update(set(tags or []))
    return counts


def score_tags(candidate_tags: Iterable[str], seed_counts: Mapping[str, int],
               weights: Optional[Mapping[str, float]] = None) -> float:
    """Sum the contribution of every seed tag the candidate carries.

    Unweighted each shared tag adds its seed multiplicity; weighted it adds
    multiplicity times the tag's uniqueness, so rare tags dominate.
    """
    if isinstance(candidate_tags, str):
        candidate_tags = [candidate_tags]
    score = 0.0
    for tag in set(candidate_tags or []):
        occurrences = seed_counts.get(tag, 0)
        if not occurrences:
            continue
        if weights is None:
            score += occurrences
        else:
            score += weights.get(tag, 0.0) * occurrences
    return score


def related_pipeline(field_name: str, seed_counts: Mapping[str, int], excluded_ids: List[Any],
                     stages: Optional[Iterable[Dict[str, Any]]] = None,
                     scope: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    """Aggregation pipeline selecting the candidates that overlap the seeds.

    Caller stages run first, in the order given.
    """
    criteria = {
        '_id': {'$nin': excluded_ids},
        field_name: {'$in': sorted(seed_counts)},
    }
    if scope:
        criteria = {'$and': [scope, criteria]}

    pipeline = list(stages or [])
    pipeline.append({'$match': criteria})
    return pipeline


def rank_candidates(candidates: Iterable[Dict[str, Any]], field_name: str,
                    seed_counts: Mapping[str, int],
                    weights: Optional[Mapping[str, float]] = None,
                    limit: int = 0) -> List[Dict[str, Any]]:
    """Score candidates, sort by descending score and apply the limit.

    The sort is stable, so equal scores keep the order the store returned.
    A limit of 0 means no limit.
    """
    if limit < 0:
        raise ValueError("limit must be >= 0")

    scored = []
    for candidate in candidates:
        result = dict(candidate)
        result['score'] = score_tags(candidate.get(field_name), seed_counts, weights)
        scored.append(result)

    scored.sort(key=lambda x: x['score'], reverse=True)
    if limit:
        scored = scored[:limit]
    return scored
