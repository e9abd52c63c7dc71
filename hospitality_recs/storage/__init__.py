"""
Storage collaborators for the recommendation engine.

Responsibilities:
- Define the item and interaction repository interfaces.
- Provide thread-safe in-memory implementations.
- Seed item catalogs from CSV files.
- Answer date-range availability questions for bookable items.
"""
