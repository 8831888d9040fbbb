from dataclasses import dataclass, field
from typing import List

from blockbattle.components.cell import Cell, EMPTY


def empty_grid(rows: int, cols: int) -> List[List[Cell]]:
    return [[EMPTY] * cols for _ in range(rows)]


@dataclass(slots=True)
class Board:
    """One player's playfield; ``cells[0]`` is the top row."""
    rows: int
    cols: int
    cells: List[List[Cell]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.cells:
            self.cells = empty_grid(self.rows, self.cols)

    def reset(self) -> None:
        self.cells = empty_grid(self.rows, self.cols)
