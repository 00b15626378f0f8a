"""Staked price-prediction rooms settled against an oracle feed"""

__version__ = "0.1.0"
