"""
Autosave Scheduler — Debounced flush decisions for a cooperative host loop.

``mark_dirty(now)`` pushes the deadline to ``now + debounce`` on every call,
so a burst of mutations produces a single flush timed from the last one.
``tick(now)`` is a pure transition: it reports whether a flush is due and,
if so, clears the dirty flag before the caller writes. A failed write is not
retried until the state is marked dirty again.

The scheduler owns no thread, timer or clock; time always comes from the host.
"""


class AutosaveScheduler:
    """Dirty flag plus deadline, driven by the host's own tick."""

    __slots__ = ("_debounce", "_dirty", "_deadline")

    def __init__(self, debounce: float = 1.0):
        if debounce < 0:
            raise ValueError(f"debounce must be >= 0, got {debounce}")
        self._debounce = float(debounce)
        self._dirty = False
        self._deadline = 0.0

    def __repr__(self) -> str:
        return (
            f'<AutosaveScheduler debounce={self._debounce} '
            f'dirty={self._dirty} deadline={self._deadline}>'
        )

    @property
    def debounce(self) -> float:
        return self._debounce

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def deadline(self) -> float:
        return self._deadline

    def mark_dirty(self, now: float) -> None:
        self._dirty = True
        self._deadline = now + self._debounce

    def due(self, now: float) -> bool:
        return self._dirty and now >= self._deadline

    def tick(self, now: float) -> bool:
        """Advance the scheduler to ``now``.

        Returns:
            True if the caller must flush now; the dirty flag is already cleared.
        """
        if not self.due(now):
            return False
        self._dirty = False
        return True

    def cancel(self) -> None:
        """Drop any pending flush."""
        self._dirty = False
        self._deadline = 0.0
