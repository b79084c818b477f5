# cooperos

A small kernel for learning how threads, scheduling and synchronization work. It runs on
one simulated CPU.

Threads are cooperative. Only the thread that holds the simulated CPU makes progress. A
thread gives the CPU up in one of these ways:

- it yields
- it sleeps
- it finishes
- it blocks on a semaphore, lock or condition variable

A simulated timer interrupt drives preemption and a software alarm clock.

## Modules

### `cooperos.interrupt`

The simulated interrupt controller.

- `IntStatus` (`ON` or `OFF`) is the interrupt level.
- `MachineStatus` (`IDLE`, `SYSTEM`, `USER`) is the machine mode.
- `Interrupt` keeps the simulated clock in `ticks`. It has these operations:
  - `set_level`, which returns the previous level.
  - `enable`.
  - `idle`, which jumps ahead to the next pending interrupt or raises `Halted` when none is left.
  - `yield_on_return`, which is only valid inside a handler.
  - `any_future_interrupts`.
  - `schedule`, which devices use to ask for a callback some ticks from now.

Re-enabling interrupts advances the clock one tick and fires any interrupts that are due.

### `cooperos.scheduler`

`Scheduler` is a first-in first-out ready queue. It has these operations:

- `ready_to_run`
- `find_next_to_run`
- `run`, which switches the CPU to another thread
- `check_to_be_destroyed`, which reclaims a thread that has finished
- `dump`, which prints the ready queue and returns the names on it

Every operation requires interrupts to be off.

### `cooperos.thread`

`Thread` control blocks have these operations:

- `fork(func, arg)`
- `yield_cpu`
- `sleep(finishing)`
- `begin`
- `finish`
- `check_overflow`
- `self_test`

`check_overflow` raises `StackOverflowError` if a forked thread's stack fencepost has been
overwritten. `ThreadStatus` gives the life-cycle state, which is one of `JUST_CREATED`,
`RUNNING`, `READY` or `BLOCKED`.

### `cooperos.alarm`

`Alarm` is driven by a periodic timer interrupt. With random slicing on, the interrupt
comes at random intervals instead.

`wait_until(delay)` puts the current thread on a `WaitQueue` until `delay` timer
interrupts have passed.

On each timer interrupt, the alarm:

- wakes the threads that are due
- asks for the running thread to be preempted

The timer turns itself off once the CPU is idle and nothing else can happen.

### `cooperos.synch`

`Semaphore`:

- Has `p` and `v`.
- Its `value` never drops below zero.

`Lock`:

- Has `acquire`, `release` and `is_held_by_current_thread`.
- Only the holder may release it.
- It is usable as a context manager.

`Condition` is a Mesa-style condition variable with `wait`, `signal` and `broadcast`.

### `cooperos.synchlist`

`SynchList` is a FIFO list guarded by a lock. It has these operations:

- `append`
- `remove_front`, which waits until an item is available
- `apply`
- `self_test`

### `cooperos.kernel`

`Kernel` ties these together.

- `initialize` creates the interrupt controller, scheduler, alarm and main thread.
- `self_test` runs the thread, semaphore and synchronized-list ping-pong tests.
- `run` finishes the main thread, lets the other threads run, and returns the tick at which
  the machine halts.

## Installing

```
pip install .
```

## Running

```
cooperos
```

This boots the kernel, runs its self tests, and then runs it until the machine halts. The
self tests are:

- two threads yielding back and forth five times each
- a semaphore ping-pong
- a synchronized-list ping-pong

Options:

- `-d FLAGS`: set the level of the `cooperos` logger. Flags containing `+` or `t` select
  debug level, and anything else selects warning level.
- `-rs SEED`: seed the random number generator and make time slices randomly timed.
- `-u`: print usage lines.
- `-z`: print a one-line banner.

Ctrl-C stops the run with a clean-up message.

## Using it from Python

```python
from cooperos.kernel import Kernel

kernel = Kernel(["-rs", "42"])   # arguments without the program name
kernel.initialize()
kernel.self_test()
halted_at = kernel.run()
print("halted at tick", halted_at)
```

## What it does not do

The package only simulates kernel threads and their synchronization. It does not cover:

- running user programs
- address spaces or system calls
- a file system
- a console or any other simulated device beyond the timer

## Tests

```
pip install .[test]
pytest
```