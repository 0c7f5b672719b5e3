"""
Neighbour-cell measurement table for handover decisions.

Each connected terminal (RNTI) owns one row mapping neighbour cell ids to
the latest RSRQ it reported for that cell. Rows are created lazily on the
first neighbour report and persist until ``remove_terminal`` is called.
"""

import logging
from typing import Dict, Iterator, List, Optional
from dataclasses import dataclass

logger = logging.getLogger(__name__)

NO_CELL = 0


@dataclass
class NeighbourMeasurement:
    """Latest radio measurement of a neighbour cell"""
    cell_id: int
    rsrq: int  # quantized, 0..34


class MeasurementStore:
    """
    In-memory measurement table: terminal -> (cell -> measurement).

    Later reports overwrite earlier ones for the same (terminal, cell) pair;
    no history is retained.
    """

    def __init__(self):
        self._table: Dict[int, Dict[int, NeighbourMeasurement]] = {}

    def update_neighbour(self, terminal_id: int, cell_id: int, rsrq: int):
        """Insert or overwrite the measurement of ``cell_id`` for a terminal"""
        row = self._table.get(terminal_id)
        if row is None:
            row = {}
            self._table[terminal_id] = row
            logger.debug(f"Created measurement row for RNTI {terminal_id}")

        measurement = row.get(cell_id)
        if measurement is None:
            row[cell_id] = NeighbourMeasurement(cell_id=cell_id, rsrq=rsrq)
        else:
            measurement.rsrq = rsrq

    def get_neighbours(self, terminal_id: int) -> Optional[Dict[int, int]]:
        """
        Get the known neighbours of a terminal.

        Returns:
            Snapshot mapping cell id -> RSRQ, or None if the terminal has
            never reported a neighbour (as opposed to an empty mapping).
        """
        row = self._table.get(terminal_id)
        if row is None:
            return None
        return {cell_id: m.rsrq for cell_id, m in row.items()}

    def get_measurements(self, terminal_id: int) -> List[NeighbourMeasurement]:
        """Get copies of the stored measurements of a terminal"""
        row = self._table.get(terminal_id, {})
        return [NeighbourMeasurement(m.cell_id, m.rsrq) for m in row.values()]

    def remove_terminal(self, terminal_id: int) -> bool:
        """Drop the row of a disconnected terminal"""
        if terminal_id not in self._table:
            return False
        del self._table[terminal_id]
        logger.debug(f"Removed measurement row for RNTI {terminal_id}")
        return True

    def terminals(self) -> Iterator[int]:
        return iter(list(self._table))

    def clear(self):
        self._table.clear()

    def __contains__(self, terminal_id: int) -> bool:
        return terminal_id in self._table

    def __len__(self) -> int:
        return len(self._table)
