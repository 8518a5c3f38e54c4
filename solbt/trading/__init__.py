from .delayed_entry import DelayedEntryEvaluator, DelayedEntryResult

__all__ = ["DelayedEntryEvaluator", "DelayedEntryResult"]
