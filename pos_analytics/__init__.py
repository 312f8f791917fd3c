"""
POS Analytics Engine

Revenue, product, traffic, customer and inventory analytics over point of
sale transactions.
"""

__version__ = "1.0.0"
