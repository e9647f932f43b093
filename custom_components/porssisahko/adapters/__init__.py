"""Adapters for external integration interfaces."""

from .spot_price_adapter import PriceFetchError, PriceInterval, PriceSeries, SpotPriceAdapter

__all__ = ["PriceFetchError", "PriceInterval", "PriceSeries", "SpotPriceAdapter"]
