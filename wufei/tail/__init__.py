"""Per-source log tailing.

Exports:
    TailWorker     -- follows one source's log stream into its sink.
    TailSupervisor -- owns the active worker set and launches workers.
"""

from wufei.tail.supervisor import TailOutcome, TailSupervisor
from wufei.tail.worker import TailWorker

__all__ = ["TailOutcome", "TailSupervisor", "TailWorker"]
