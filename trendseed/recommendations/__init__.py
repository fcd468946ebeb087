"""
Recommendation resolution: ranked, deduplicated seed lists built from a
cascade of data sources.

Modules
-------
tiers    : precomputed_tier / heuristic_tier / trending_tier — one store read
           each, returning candidate seeds in tier order.
fallback : static hand-authored seeds for when nothing live is available.
resolver : RecommendationResolver — runs the cascade with a seen set,
           contiguous re-ranking, per-tier timeouts and fall-through.
"""
