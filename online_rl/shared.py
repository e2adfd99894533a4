"""Single-writer handle onto one object held by several owners.

A greedy target policy and the algorithm that trains the Q-function both hold
a `Shared` onto the same approximator. Every owner sees a write immediately:
there is exactly one underlying object, not copies. Borrows are tracked so a
write can never overlap another borrow. The handle is not thread-safe; confine
a learner and its handles to one thread.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generic, Iterator, TypeVar

import numpy as np

T = TypeVar("T")


class BorrowError(RuntimeError):
    """Raised when a borrow would break the single-writer rule."""


class _Cell(Generic[T]):
    __slots__ = ("value", "readers", "writing", "handles")

    def __init__(self, value: T):
        self.value = value
        self.readers = 0
        self.writing = False
        self.handles = 0


class Shared(Generic[T]):
    def __init__(self, value: T):
        if isinstance(value, Shared):
            raise TypeError("value is already shared; use clone() to add an owner")
        self._cell: _Cell[T] = _Cell(value)
        self._cell.handles = 1

    @classmethod
    def _from_cell(cls, cell: _Cell[T]) -> "Shared[T]":
        handle = cls.__new__(cls)
        handle._cell = cell
        cell.handles += 1
        return handle

    def clone(self) -> "Shared[T]":
        """Another handle onto the same object."""
        return Shared._from_cell(self._cell)

    def __del__(self) -> None:
        cell = getattr(self, "_cell", None)
        if cell is not None:
            cell.handles -= 1

    @property
    def strong_count(self) -> int:
        return self._cell.handles

    def ptr_eq(self, other: "Shared[Any]") -> bool:
        return self._cell is other._cell

    @contextmanager
    def read(self) -> Iterator[T]:
        cell = self._cell
        if cell.writing:
            raise BorrowError("already mutably borrowed")
        cell.readers += 1
        try:
            yield cell.value
        finally:
            cell.readers -= 1

    @contextmanager
    def write(self) -> Iterator[T]:
        cell = self._cell
        if cell.writing:
            raise BorrowError("already mutably borrowed")
        if cell.readers:
            raise BorrowError(f"already borrowed by {cell.readers} reader(s)")
        cell.writing = True
        try:
            yield cell.value
        finally:
            cell.writing = False

    # Approximator interface, reads.
    @property
    def n_features(self) -> int:
        with self.read() as v:
            return v.n_features

    @property
    def n_outputs(self) -> int:
        with self.read() as v:
            return v.n_outputs

    def embed(self, state: Any) -> np.ndarray:
        with self.read() as v:
            return v.embed(state)

    def evaluate(self, phi: np.ndarray) -> Any:
        with self.read() as v:
            return v.evaluate(phi)

    def evaluate_index(self, phi: np.ndarray, index: int) -> float:
        with self.read() as v:
            return v.evaluate_index(phi, index)

    def jacobian(self, phi: np.ndarray) -> np.ndarray:
        with self.read() as v:
            return v.jacobian(phi)

    def weights(self) -> np.ndarray:
        with self.read() as v:
            return v.weights()

    def weights_view(self) -> np.ndarray:
        with self.read() as v:
            return v.weights_view()

    def weights_dim(self) -> tuple[int, ...]:
        with self.read() as v:
            return v.weights_dim()

    # Approximator interface, writes.
    def weights_view_mut(self) -> np.ndarray:
        with self.write() as v:
            return v.weights_view_mut()

    def update(self, phi: np.ndarray, error: Any) -> None:
        with self.write() as v:
            v.update(phi, error)

    def update_index(self, phi: np.ndarray, index: int, error: float) -> None:
        with self.write() as v:
            v.update_index(phi, index, error)

    def update_raw(self, delta: np.ndarray) -> None:
        with self.write() as v:
            v.update_raw(delta)

    # Algorithm contracts; each may mutate, so each takes the write borrow.
    def handle_terminal(self) -> None:
        with self.write() as v:
            v.handle_terminal()

    def handle_transition(self, transition: Any) -> None:
        with self.write() as v:
            v.handle_transition(transition)

    def handle_sequence(self, sequence: Any) -> None:
        with self.write() as v:
            v.handle_sequence(sequence)

    def handle_batch(self, batch: Any) -> None:
        with self.write() as v:
            v.handle_batch(batch)

    def sample_target(self, state: Any) -> Any:
        with self.write() as v:
            return v.sample_target(state)

    def sample_behaviour(self, state: Any) -> Any:
        with self.write() as v:
            return v.sample_behaviour(state)

    def predict_v(self, state: Any) -> float:
        with self.write() as v:
            return v.predict_v(state)

    def predict_qsa(self, state: Any, action: Any) -> float:
        with self.write() as v:
            return v.predict_qsa(state, action)

    def predict_qs(self, state: Any) -> np.ndarray:
        with self.write() as v:
            return v.predict_qs(state)

    def __repr__(self) -> str:
        return f"Shared({self._cell.value!r}, handles={self._cell.handles})"


def make_shared(value: T) -> Shared[T]:
    if isinstance(value, Shared):
        return value
    return Shared(value)
