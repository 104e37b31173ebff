"""Public interface for the ``card_reconciliation`` package.

Re-exports the models, the pure reconciliation pipeline and the session
facade. There is no runtime logic here, only symbol re-exports.
"""

from .competency import Competency, parse_item_date, split_by_competency
from .entries import BuildResult, build_entries, build_grouped_entry
from .export_ledger import ExportLedger
from .ignore_registry import IgnoreRegistry, IgnoreStore
from .matching import match_by_amount, reconcile
from .models import (
    AccountingEntry,
    AccountingParameter,
    Allocation,
    Card,
    EntryOrigin,
    ReconciledPair,
    ReconciliationResult,
    SourceRef,
    Transaction,
)
from .parameters import Intent, resolve_parameter
from .serializers import render_ledger_csv, render_report
from .session import ExportAction, ExportOutcome, ExportStatus, Pool, ReconciliationSession

__all__ = [
    # Models
    "AccountingEntry",
    "AccountingParameter",
    "Allocation",
    "Card",
    "Competency",
    "EntryOrigin",
    "ReconciledPair",
    "ReconciliationResult",
    "SourceRef",
    "Transaction",
    # Pipeline
    "BuildResult",
    "Intent",
    "build_entries",
    "build_grouped_entry",
    "match_by_amount",
    "parse_item_date",
    "reconcile",
    "render_ledger_csv",
    "render_report",
    "resolve_parameter",
    "split_by_competency",
    # Session
    "ExportAction",
    "ExportLedger",
    "ExportOutcome",
    "ExportStatus",
    "IgnoreRegistry",
    "IgnoreStore",
    "Pool",
    "ReconciliationSession",
]
