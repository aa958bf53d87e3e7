"""
Tier Pricing Package

Quantity-based pricing tiers for a storefront catalog.
Validates tier bands on admission and resolves Quantity → Tier → Unit Price
with base price fallback.
"""

__version__ = "1.0.0"
