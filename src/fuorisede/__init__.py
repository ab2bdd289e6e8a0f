"""
Chef Fuori-Sede - recipe suggestions from whatever is in the fridge.

Orchestrates a generative backend to produce recipes, shopping lists and
dish images, and keeps the derived session state (servings, favorites,
regenerated recipes) consistent.
"""

__version__ = "1.0.0"
