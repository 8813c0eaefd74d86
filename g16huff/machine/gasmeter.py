"""
g16huff.machine.gasmeter — deterministic gas metering with OOG semantics.

- Gas is charged *before* an operation takes effect.
- If the meter would exceed its limit, `MachineError("out of gas")` is raised
  and the meter is left unchanged.
- Memory is priced like the EVM: 3 gas per word plus words**2 // 512,
  charged on the growth only.
"""

from __future__ import annotations

from ..errors import MachineError

# Opcode base costs (EVM tiers).
G_ZERO = 0
G_JUMPDEST = 1
G_BASE = 2
G_VERYLOW = 3
G_LOW = 5
G_MID = 8
G_HIGH = 10
G_COPY = 3  # per word copied
G_WARM_ACCESS = 100  # staticcall to a precompile
G_MEMORY = 3


def words(size: int) -> int:
    return (size + 31) // 32


def memory_cost(n_words: int) -> int:
    return G_MEMORY * n_words + n_words * n_words // 512


class GasMeter:
    """
    Typical usage:
        gm = GasMeter(limit=200_000)
        gm.consume(3)
        gm.expand_memory(current_words, new_words)
    """

    __slots__ = ("_limit", "_used")

    def __init__(self, *, limit: int) -> None:
        if not isinstance(limit, int) or limit < 0:
            raise MachineError("gas limit must be a non-negative int", limit=limit)
        self._limit = limit
        self._used = 0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def used(self) -> int:
        return self._used

    @property
    def remaining(self) -> int:
        return self._limit - self._used

    def consume(self, amount: int) -> None:
        """Charge `amount` gas; raise on OOG without mutating state."""
        if amount < 0:
            raise MachineError("negative gas charge", amount=amount)
        new_used = self._used + amount
        if new_used > self._limit:
            raise MachineError("out of gas", need=amount, used=self._used, limit=self._limit)
        self._used = new_used

    def expand_memory(self, old_words: int, new_words: int) -> None:
        if new_words > old_words:
            self.consume(memory_cost(new_words) - memory_cost(old_words))

    def __repr__(self) -> str:  # pragma: no cover
        return f"GasMeter(limit={self._limit}, used={self._used})"


__all__ = ["GasMeter", "memory_cost", "words"]
