"""
Arkham Horror LCG tracker rules.
Pure functions over plain values; no web framework or database.
"""

# Round phases in play order. Investigation has no server-side checklist.
PHASE_ORDER = ("mythos", "investigation", "enemies", "upkeep")
