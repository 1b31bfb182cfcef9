"""
Inventory risk & projection computation engine.

Pure functions that synthesize a reproducible opportunity dataset, project
per-part stock levels, aggregate health/risk KPIs and build display-ready
breakdowns for the inventory control tower.
"""

__version__ = "0.1.0"
