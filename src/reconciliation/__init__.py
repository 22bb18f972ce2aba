"""
Reconciliation between two Lark/Feishu Base tables

Components:
- mapping: Field auto-mapping, primary-key selection, key normalization
- reconciler: Classification of records into new/modified/same/deleted/unmatchable
- writer: Sequential write pacing
- applier: Creates and updates for a diff result
- service: Public entry points returning result dicts
- report: Console and JSON output

Usage:
    from reconciliation.service import analyze_diff, apply_diff
    from reconciliation.reconciler import reconcile
"""

__version__ = "1.0.0"
__all__ = ["mapping", "reconciler", "writer", "applier", "service", "report"]
