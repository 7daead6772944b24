# enginekit

The core of a small game engine. It is built from *systems*, which are objects
with a `create` / `setup` / `update` / `teardown` / `destroy` life cycle, put
together inside a *context*. The package holds no windowing or rendering code.
It supplies the parts that such code builds on:

- `enginekit.system`: the `System` base class. A system declares the other
  systems and injected values it depends on.
- `enginekit.context`: `ContextBuilder` and `ContextObject`.
  - The builder injects plain values and creates systems in order.
  - The context object runs each step, updating systems in creation order.
  - When destroyed, it tears systems down and destroys them in reverse order.
  - `ControlFlow` holds the quit flag.
- `enginekit.tick`: `Tick`, a fixed-timestep clock.
  - It tracks the drift between real time and simulated time.
  - It sleeps when the simulation is ahead.
  - It reports whether the current tick should render a frame.
- `enginekit.frame_timers`: `FrameTimers`, named stopwatches for parts of a
  frame. A summary is logged periodically.
- `enginekit.entities`: `Entities`, a tree of named entities.
  - Removal is lazy: removing an entity removes its whole subtree on the next
    update.
  - `last_removed` lists the ids collected in that update, so other systems
    can drop their data for them.
- `enginekit.input`: `Input` keeps keyboard and mouse state, fed from queued
  events.
  - `Gesture` values such as `KeyHold`, `KeyTrigger`, `AnyOf` and
    `QuitTrigger` are polled against that state.
  - `Analog2d` values such as `Mouse`, `Gestures` and `Sum` are polled for a
    two-dimensional value.
- `enginekit.errors`: `EngineError` and the specific errors derived from it.
  `ContextError` and `SystemFailure` wrap failures with the stage and the
  system they came from.

## Installing

```
pip install enginekit
```

To run the tests:

```
pip install "enginekit[test]"
pytest
```

## A short example

```python
from enginekit.context import ContextBuilder, ControlFlow
from enginekit.entities import Entities
from enginekit.tick import Tick, TickConfig

context = (
    ContextBuilder()
    .inject(TickConfig(timestep=1 / 60))
    .system(Tick)
    .system(Entities)
    .build()
)

flow = context.lookup(ControlFlow)
entities = context.lookup(Entities)

world = entities.add_root("world")
player = entities.add(world, "player")

for _ in range(3):
    context.step()

entities.remove(world)   # player is removed along with it
context.step()
print(entities.last_removed)

flow.quit_requested = True
context.run()            # returns at once: quit was requested
context.destroy()
```

Systems are looked up by their class. A system names what it needs, and the
context hands those dependencies to `create`, `setup`, `update`, `teardown`
and `destroy`.

When a system fails, the failure is raised as a `SystemFailure`. The context
then raises it again wrapped in a `ContextError`, so the original exception is
kept in the chain.