"""
Trend scoring: weighted composite scores over one day of metric rows.

Modules
-------
trend_scorer : weight constants, pure ``score_card`` / ``score_deck`` and the
               DB-backed ``refresh_trending`` used by the trending_refresh job.
"""
