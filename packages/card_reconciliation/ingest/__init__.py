"""Adapters that turn collaborator payloads into ``card_reconciliation`` models."""

from .cards_csv import read_cards_csv
from .extraction import load_allocations, load_transactions
from .parameters_csv import read_parameters_csv

__all__ = [
    "load_allocations",
    "load_transactions",
    "read_cards_csv",
    "read_parameters_csv",
]
