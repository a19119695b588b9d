"""
Scheduler module is responsible for handing out tasks to workers and collecting their results.
Workers pull: each asks for a task when idle, so faster workers get more of them, without the
coordinator knowing anything about the workers' speed.

The submodules:
 - `core` holds the coordinator-owned structures: task queue, result buffer, overall state
 - `coordinator` is the loop itself, talking to workers over an `executor.comms.Transport`
"""
