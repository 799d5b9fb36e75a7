from .reconcile import RunResult, RunStatus
