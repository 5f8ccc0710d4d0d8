"""Process subsystem — PCBs, the ready queue, policies, and workers.

Re-exports public symbols so callers can write::

    from py_sched.process import Process, ReadyQueue, PriorityPolicy
"""

from py_sched.process.pcb import (
    TERMINAL_STATES,
    UNSET_TIME,
    Process,
    ProcessDescriptor,
    ProcessState,
)
from py_sched.process.policies import (
    Algorithm,
    Decision,
    DecisionKind,
    PriorityPolicy,
    RoundRobinPolicy,
    SchedulingPolicy,
    SJFPolicy,
    make_policy,
)
from py_sched.process.ready_queue import ReadyQueue
from py_sched.process.simulated import SimulatedWorker, SimulatedWorkerPool
from py_sched.process.worker import (
    CompletionEvent,
    SubprocessWorker,
    SubprocessWorkerFactory,
    WorkerFactory,
    WorkerHandle,
    WorkerSpawnError,
)

__all__ = [
    "TERMINAL_STATES",
    "UNSET_TIME",
    "Algorithm",
    "CompletionEvent",
    "Decision",
    "DecisionKind",
    "PriorityPolicy",
    "Process",
    "ProcessDescriptor",
    "ProcessState",
    "ReadyQueue",
    "RoundRobinPolicy",
    "SJFPolicy",
    "SchedulingPolicy",
    "SimulatedWorker",
    "SimulatedWorkerPool",
    "SubprocessWorker",
    "SubprocessWorkerFactory",
    "WorkerFactory",
    "WorkerHandle",
    "WorkerSpawnError",
    "make_policy",
]
