"""Per-deal vote tallies, recomputed from the vote set on every read."""

from __future__ import annotations

from collections.abc import Iterable

from dealflow.models.vote import ConvictionLevel, ReviewStatus, Vote, VoteSummary

_BUCKETS = {
    ConvictionLevel.STRONG_YES_PLUS: "strong_yes_plus_votes",
    ConvictionLevel.STRONG_YES: "strong_yes_votes",
    ConvictionLevel.FOLLOWING_THE_PACK: "following_pack_votes",
    ConvictionLevel.NO: "no_votes",
}


def summarize_votes(votes: Iterable[Vote]) -> VoteSummary:
    """Tally votes by conviction bucket and compute the net score.

    net_score = count(level 3) + count(level 4) - count(strong_no)
    """
    counts = dict.fromkeys(_BUCKETS.values(), 0)
    total = strong_no = to_review = 0
    for vote in votes:
        total += 1
        bucket = _BUCKETS.get(vote.conviction_level) if vote.conviction_level else None
        if bucket:
            counts[bucket] += 1
        if vote.strong_no:
            strong_no += 1
        if vote.review_status == ReviewStatus.TO_REVIEW:
            to_review += 1
    net_score = counts["strong_yes_votes"] + counts["strong_yes_plus_votes"] - strong_no
    return VoteSummary(
        total_votes=total,
        strong_no_votes=strong_no,
        to_review_votes=to_review,
        net_score=net_score,
        **counts,
    )
