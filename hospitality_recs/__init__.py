"""
Hospitality recommendation service.

Serves ranked, explainable suggestions for menu items, rooms and tables from
a stream of recorded guest interactions.
"""
