"""
Data Generation Module
"""
from .generators import MENU, TransactionGenerator, to_raw_frame

__all__ = [
    "MENU",
    "TransactionGenerator",
    "to_raw_frame",
]
