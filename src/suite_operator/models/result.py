"""Requeue directive returned by every reconcile path."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ReconcileResult:
    """Tells the work queue whether and when to reconcile again."""

    requeue: bool = False
    requeue_after: float = 0.0

    @classmethod
    def stop(cls) -> "ReconcileResult":
        return cls()

    @classmethod
    def after(cls, delay: float) -> "ReconcileResult":
        return cls(requeue=True, requeue_after=delay)
