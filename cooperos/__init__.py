"""A small simulated kernel: cooperative threads, FIFO scheduling, an alarm clock and synchronization primitives."""

__version__ = "0.1.0"