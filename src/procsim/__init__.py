"""procsim — a teaching simulator for process scheduling and memory allocation.

The package models two cooperating engines:

- a **memory allocator** that carves a fixed amount of memory into
  equal blocks and hands out contiguous runs using first-fit, and
- a **process scheduler** that advances simulated processes one tick at
  a time under FCFS, SJF, or priority scheduling.

``procsim.kernel.Simulation`` owns both and is the entry point::

    from procsim.kernel import Simulation

    sim = Simulation()
    sim.boot()
    sim.create_process(name="editor", priority="high", memory_mb=64, burst=3)
    sim.start()
    sim.tick()
"""

__version__ = "0.1.0"
