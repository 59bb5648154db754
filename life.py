#!/usr/bin/env python3
"""
  L I F E  on a torus
  Conway's Game of Life, sized to your terminal, drawn with raw ANSI.

  The grid wraps at every edge, so nothing ever falls off the world.
  Cells are born bright white, cool through cyan and green, warm into
  yellow and red, and settle into purple once they have seen six
  generations go by.

  Two profiles share the same loop:
    enriched  age colors, hidden cursor, Ctrl-C / SIGTERM shut down cleanly
    plain     monochrome blocks, runs until the process is killed

  Nothing but the terminal is written to. Per-generation stats can be
  logged to CSV from the bench harness (life_bench.py --stats).
"""

from __future__ import annotations

import os
import signal
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from types import FrameType
from typing import IO, Callable, ClassVar, Iterable

import numpy as np
from numpy.typing import NDArray
from scipy.ndimage import convolve

# ── ANSI ────────────────────────────────────────────────────────────────
CLEAR_SCREEN = "\x1b[2J"
CURSOR_HOME = "\x1b[H"
HIDE_CURSOR = "\x1b[?25l"
SHOW_CURSOR = "\x1b[?25h"
COLOR_RESET = "\x1b[0m"

# ── Palette ─────────────────────────────────────────────────────────────
# newborn → young → mature → aging → old → very old → ancient
AGE_COLORS: tuple[str, ...] = (
    "\x1b[97m",  # bright white
    "\x1b[96m",  # bright cyan
    "\x1b[92m",  # bright green
    "\x1b[93m",  # bright yellow
    "\x1b[33m",  # yellow
    "\x1b[31m",  # red
    "\x1b[35m",  # purple
)
ANCIENT_COLOR = AGE_COLORS[-1]

ALIVE_GLYPH = "█"
DEAD_GLYPH = " "

# ── Engine defaults ─────────────────────────────────────────────────────
FALLBACK_SIZE: tuple[int, int] = (80, 24)  # columns, rows
SEED_DENSITY: float = 0.25
SHUTDOWN_NOTICE = "\nShutting down gracefully...\n"

# ── Convolution kernel (reused every step) ────────────────────────────
NEIGHBOR_KERNEL: NDArray = np.array([[1, 1, 1], [1, 0, 1], [1, 1, 1]], dtype=np.int16)


@dataclass(frozen=True)
class Profile:
    """How one flavour of the loop looks and behaves."""
    name: str
    colored: bool
    manage_cursor: bool
    handle_signals: bool
    period: float  # seconds between generations


PROFILES: dict[str, Profile] = {
    "enriched": Profile("enriched", colored=True, manage_cursor=True,
                        handle_signals=True, period=0.100),
    "plain": Profile("plain", colored=False, manage_cursor=False,
                     handle_signals=False, period=0.080),
}


@dataclass(frozen=True)
class Cell:
    """A single grid position as seen from outside the engine."""
    alive: bool
    age: int


# ═══════════════════════════════════════════════════════════════════════
#  Stats logger
# ═══════════════════════════════════════════════════════════════════════

class StatsLogger:
    """Writes run telemetry to CSV for post-hoc inspection."""

    HEADER: ClassVar[str] = "gen,time_s,population,event\n"

    def __init__(self, path: Path) -> None:
        self._path = path
        self._fh: IO[str] | None = None
        self._t0: float = time.monotonic()

    @property
    def active(self) -> bool:
        return self._fh is not None

    def open(self) -> None:
        try:
            self._fh = open(self._path, "w")
            self._fh.write(self.HEADER)
            self._fh.flush()
        except OSError:
            self._fh = None

    def log(self, gen: int, pop: int, event: str = "") -> None:
        if self._fh is None:
            return
        t = time.monotonic() - self._t0
        try:
            self._fh.write(f"{gen},{t:.1f},{pop},{event}\n")
            # Flush on events or periodically
            if event or gen % 50 == 0:
                self._fh.flush()
        except OSError:
            self.close()

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError:
                pass
            self._fh = None


# ═══════════════════════════════════════════════════════════════════════
#  Terminal
# ═══════════════════════════════════════════════════════════════════════

def terminal_size(stream: IO[str] | None = None) -> tuple[int, int]:
    """(columns, rows) of the terminal behind *stream*, or FALLBACK_SIZE.

    Only the device is asked; COLUMNS and LINES are not consulted.
    """
    stream = sys.stdout if stream is None else stream
    try:
        size = os.get_terminal_size(stream.fileno())
    except (AttributeError, OSError, ValueError):
        # not a terminal, detached, or a stream without a descriptor
        return FALLBACK_SIZE
    if size.columns <= 0 or size.lines <= 0:
        return FALLBACK_SIZE
    return size.columns, size.lines


# ═══════════════════════════════════════════════════════════════════════
#  Neighbors
# ═══════════════════════════════════════════════════════════════════════

def count_neighbors(alive: NDArray[np.int8], x: int, y: int) -> int:
    """Live cells among the 8 wrapped neighbours of (x, y)."""
    h, w = alive.shape
    count = 0
    for dy in (-1, 0, 1):
        for dx in (-1, 0, 1):
            if dx == 0 and dy == 0:
                continue
            if alive[(y + dy + h) % h, (x + dx + w) % w]:
                count += 1
    return count


def neighbor_counts(
    alive: NDArray[np.int8] | NDArray[np.int16], out: NDArray[np.int16] | None = None
) -> NDArray[np.int16]:
    """Neighbour count for every cell at once (toroidal wrap-around)."""
    if out is None:
        out = np.empty(alive.shape, dtype=np.int16)
    convolve(alive.astype(np.int16, copy=False), NEIGHBOR_KERNEL, output=out, mode="wrap")
    return out


# ═══════════════════════════════════════════════════════════════════════
#  Colors
# ═══════════════════════════════════════════════════════════════════════

def color_for_age(age: int) -> str:
    if age < 0:
        raise ValueError(f"age must be non-negative, got {age}")
    if age >= len(AGE_COLORS):
        return ANCIENT_COLOR
    return AGE_COLORS[age]


# ═══════════════════════════════════════════════════════════════════════
#  The universe
# ═══════════════════════════════════════════════════════════════════════

class Life:
    """
    A fixed-size toroidal Game of Life with per-cell ages.

    Both planes (alive, age) live in preallocated ``(2, h, w)`` arenas.
    ``_cur`` picks the slab being shown; the other slab receives the next
    generation, then the index flips. Nothing is copied or reallocated
    between generations.
    """

    def __init__(
        self,
        width: int,
        height: int,
        seed: int | np.random.Generator | None = None,
        density: float = SEED_DENSITY,
    ) -> None:
        if width < 1 or height < 1:
            raise ValueError(f"grid must be at least 1x1, got {width}x{height}")
        if not 0.0 <= density <= 1.0:
            raise ValueError(f"density must be within [0, 1], got {density}")

        self.width: int = width
        self.height: int = height
        self.generation: int = 0
        self._rng: np.random.Generator = np.random.default_rng(seed)

        self._alive: NDArray[np.int8] = np.zeros((2, height, width), dtype=np.int8)
        self._age: NDArray[np.int32] = np.zeros((2, height, width), dtype=np.int32)
        self._cur: int = 0

        # Pre-allocated buffers for step() hot path
        self._grid_i16: NDArray[np.int16] = np.empty((height, width), dtype=np.int16)
        self._neighbor_buf: NDArray[np.int16] = np.empty((height, width), dtype=np.int16)

        self._seed_random(density)
        self._cached_pop: int = int(self.alive.sum())

    @classmethod
    def from_terminal(
        cls,
        stream: IO[str] | None = None,
        seed: int | np.random.Generator | None = None,
    ) -> Life:
        """Size the grid to the terminal, leaving one row for the last newline."""
        cols, rows = terminal_size(stream)
        return cls(cols, max(1, rows - 1), seed=seed)

    # ── Seeding ─────────────────────────────────────────────────────

    def _seed_random(self, density: float) -> None:
        if density == SEED_DENSITY:
            # one in four
            live = self._rng.integers(0, 4, size=(self.height, self.width)) == 0
        else:
            live = self._rng.random((self.height, self.width)) < density
        self.alive[...] = live
        self.age[...] = 0

    def seed_cells(self, cells: Iterable[tuple[int, int]]) -> None:
        """Replace the grid with exactly the given (x, y) live cells."""
        self._alive.fill(0)
        self._age.fill(0)
        cur = self.alive
        for x, y in cells:
            if not (0 <= x < self.width and 0 <= y < self.height):
                raise ValueError(f"cell {(x, y)} outside {self.width}x{self.height} grid")
            cur[y, x] = 1
        self.generation = 0
        self._cached_pop = int(cur.sum())

    # ── Buffers ─────────────────────────────────────────────────────

    @property
    def alive(self) -> NDArray[np.int8]:
        return self._alive[self._cur]

    @property
    def age(self) -> NDArray[np.int32]:
        return self._age[self._cur]

    @property
    def next_alive(self) -> NDArray[np.int8]:
        return self._alive[1 - self._cur]

    @property
    def next_age(self) -> NDArray[np.int32]:
        return self._age[1 - self._cur]

    def cell(self, x: int, y: int) -> Cell:
        return Cell(alive=bool(self.alive[y, x]), age=int(self.age[y, x]))

    def live_cells(self) -> set[tuple[int, int]]:
        ys, xs = np.nonzero(self.alive)
        return set(zip(xs.tolist(), ys.tolist()))

    def population(self) -> int:
        return self._cached_pop

    # ── Simulation ──────────────────────────────────────────────────

    def step(self) -> None:
        """Advance one generation into the back slab, then flip."""
        cur_alive = self.alive
        cur_age = self.age
        nxt_alive = self.next_alive
        nxt_age = self.next_age

        # Reuse pre-allocated input + output buffers (avoids per-frame allocations)
        np.copyto(self._grid_i16, cur_alive)
        n = neighbor_counts(self._grid_i16, out=self._neighbor_buf)

        # Zero-copy bool view of the int8 plane
        g_bool = cur_alive.view(np.bool_)
        n_is_3 = n == 3
        birth = ~g_bool & n_is_3
        survive = g_bool & (n_is_3 | (n == 2))

        # birth/survive are mutually exclusive, so their sum is the new plane
        np.add(birth.view(np.int8), survive.view(np.int8), out=nxt_alive)
        # Survivors carry age + 1; births, deaths and empties land on 0
        np.add(cur_age, 1, out=nxt_age)
        nxt_age *= survive

        self._cur = 1 - self._cur
        self.generation += 1
        self._cached_pop = int(nxt_alive.sum())


# ═══════════════════════════════════════════════════════════════════════
#  Rendering
# ═══════════════════════════════════════════════════════════════════════

def frame(life: Life, colored: bool = True) -> str:
    """One full frame, cursor-home first, one line per grid row."""
    # .tolist avoids per-element numpy scalar conversion in the loops below
    alive = life.alive.tolist()
    out: list[str] = [CURSOR_HOME]

    if not colored:
        for row in alive:
            out.extend(ALIVE_GLYPH if a else DEAD_GLYPH for a in row)
            out.append("\n")
        return "".join(out)

    # One colored glyph per distinct age on screen, built once per frame
    glyphs: dict[int, str] = {}
    for row, age_row in zip(alive, life.age.tolist()):
        for a, age in zip(row, age_row):
            if not a:
                out.append(DEAD_GLYPH)
                continue
            glyph = glyphs.get(age)
            if glyph is None:
                glyph = glyphs[age] = f"{color_for_age(age)}{ALIVE_GLYPH}{COLOR_RESET}"
            out.append(glyph)
        out.append("\n")
    return "".join(out)


def render(life: Life, out: IO[str], colored: bool = True) -> None:
    """Write one frame to *out* in a single write, then flush."""
    out.write(frame(life, colored))
    out.flush()


# ═══════════════════════════════════════════════════════════════════════
#  Lifecycle
# ═══════════════════════════════════════════════════════════════════════

class ShutdownToken:
    """Set once by a signal handler, polled once per tick by the loop."""

    def __init__(self) -> None:
        self._set: bool = False
        self.signum: int | None = None

    def request(self, signum: int = 0, frame: FrameType | None = None) -> None:
        self.signum = signum
        self._set = True

    def is_set(self) -> bool:
        return self._set

    @property
    def signal_name(self) -> str:
        if not self.signum:
            return ""
        try:
            return signal.Signals(self.signum).name
        except ValueError:
            return str(self.signum)


class Simulation:
    """Render-then-advance on a fixed-period ticker until told to stop."""

    SIGNALS: ClassVar[tuple[signal.Signals, ...]] = (signal.SIGINT, signal.SIGTERM)

    def __init__(
        self,
        life: Life,
        out: IO[str],
        profile: str | Profile = "enriched",
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        stats: StatsLogger | None = None,
    ) -> None:
        self.life = life
        self.out = out
        self.profile: Profile = PROFILES[profile] if isinstance(profile, str) else profile
        self.token = ShutdownToken()
        self._sleep = sleep
        self._clock = clock
        self._stats = stats
        self.ticks: int = 0

    def start(self) -> None:
        if self.profile.manage_cursor:
            self.out.write(HIDE_CURSOR)
        self.out.write(CLEAR_SCREEN)
        self.out.flush()

    def tick(self) -> None:
        render(self.life, self.out, colored=self.profile.colored)
        self.life.step()
        self.ticks += 1
        if self._stats is not None and self.life.generation % 10 == 0:
            self._stats.log(self.life.generation, self.life.population())

    def cleanup(self) -> None:
        """Put the terminal back the way we found it."""
        self.out.write(COLOR_RESET)
        self.out.write(SHOW_CURSOR)
        self.out.flush()

    def run(self, max_ticks: int | None = None) -> None:
        previous = self._install_handlers()
        if self._stats is not None:
            self._stats.log(self.life.generation, self.life.population(), "start")
        try:
            self.start()
            period = self.profile.period
            deadline = self._clock() + period
            while max_ticks is None or self.ticks < max_ticks:
                if self.token.is_set():
                    break
                self.tick()
                now = self._clock()
                self._sleep(max(0.0, deadline - now))
                # Ticks that were overrun are dropped, not caught up
                deadline = max(deadline, now) + period
            if self.token.is_set():
                self.out.write(SHUTDOWN_NOTICE)
                if self._stats is not None:
                    self._stats.log(
                        self.life.generation,
                        self.life.population(),
                        f"shutdown:{self.token.signal_name}",
                    )
        finally:
            if self.profile.manage_cursor:
                self.cleanup()
            self._restore_handlers(previous)

    def _install_handlers(self) -> dict[signal.Signals, object]:
        if not self.profile.handle_signals:
            return {}
        previous: dict[signal.Signals, object] = {}
        for sig in self.SIGNALS:
            previous[sig] = signal.signal(sig, self.token.request)
        return previous

    @staticmethod
    def _restore_handlers(previous: dict[signal.Signals, object]) -> None:
        for sig, handler in previous.items():
            # None means the old handler was installed outside Python
            signal.signal(sig, signal.SIG_DFL if handler is None else handler)  # type: ignore[arg-type]


def main(profile: str = "enriched", seed: int | None = None) -> None:
    out = sys.stdout
    life = Life.from_terminal(out, seed=seed)
    Simulation(life, out, profile).run()


def run() -> None:
    main("enriched")


def run_plain() -> None:
    try:
        main("plain")
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
