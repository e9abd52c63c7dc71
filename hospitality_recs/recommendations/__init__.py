"""
Hybrid recommendation engine.

Responsibilities:
- Record guest interactions and keep item rating aggregates current.
- Reduce a guest's recent history into a preference profile.
- Blend collaborative, content-based and popularity candidates.
- Cache blended results per guest and request context for a fixed TTL.
"""
