"""
Quality sample providers for QoE/QoS-aware handover decisions.

A provider is a read-only key-value source of application-quality samples,
keyed either by terminal (the terminal's own current experience) or by cell
(an aggregate over the terminals served by that cell). Reads happen on the
decision path, so every implementation here answers from memory; anything
that touches storage does so once, up front.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

import pandas as pd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QualitySample:
    """
    Application-quality sample.

    ``qoe`` is a mean opinion score (1-5) and ``qos`` a packet delivery ratio
    (0-1). Either may be None when the source has no value for it.
    """
    qoe: Optional[float] = None
    qos: Optional[float] = None


class QualitySampleProvider(ABC):
    """Read-only source of quality samples"""

    @abstractmethod
    def read_terminal_quality(self, terminal_id: int) -> Optional[QualitySample]:
        """Current sample of a terminal, or None if none is available"""

    @abstractmethod
    def read_cell_quality(self, cell_id: int) -> Optional[QualitySample]:
        """Aggregate sample of a cell, or None if none is available"""


class InMemoryQualityProvider(QualitySampleProvider):
    """Dictionary-backed provider, written by a live collector or by tests"""

    def __init__(self,
                 terminal_samples: Optional[Dict[int, QualitySample]] = None,
                 cell_samples: Optional[Dict[int, QualitySample]] = None):
        self.terminal_samples: Dict[int, QualitySample] = dict(terminal_samples or {})
        self.cell_samples: Dict[int, QualitySample] = dict(cell_samples or {})

    def read_terminal_quality(self, terminal_id: int) -> Optional[QualitySample]:
        return self.terminal_samples.get(terminal_id)

    def read_cell_quality(self, cell_id: int) -> Optional[QualitySample]:
        return self.cell_samples.get(cell_id)

    def set_terminal_quality(self, terminal_id: int, qoe: Optional[float] = None,
                             qos: Optional[float] = None):
        self.terminal_samples[terminal_id] = QualitySample(qoe=qoe, qos=qos)

    def set_cell_quality(self, cell_id: int, qoe: Optional[float] = None,
                         qos: Optional[float] = None):
        self.cell_samples[cell_id] = QualitySample(qoe=qoe, qos=qos)

    def remove_terminal(self, terminal_id: int):
        self.terminal_samples.pop(terminal_id, None)

    def clear(self):
        self.terminal_samples.clear()
        self.cell_samples.clear()


def _optional_float(value) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


class TableQualityProvider(InMemoryQualityProvider):
    """
    Provider built from a tabular snapshot.

    The table has one row per sample with columns ``scope`` (``terminal`` or
    ``cell``), ``id``, ``qoe`` and ``qos``. Empty cells mean "no value".
    When a key appears several times the last row wins.
    """

    REQUIRED_COLUMNS = ('scope', 'id', 'qoe', 'qos')

    @classmethod
    def from_dataframe(cls, frame: pd.DataFrame) -> 'TableQualityProvider':
        missing = [c for c in cls.REQUIRED_COLUMNS if c not in frame.columns]
        if missing:
            raise ValueError(f"Quality table is missing columns: {missing}")

        provider = cls()
        for row in frame.itertuples(index=False):
            sample = QualitySample(qoe=_optional_float(row.qoe), qos=_optional_float(row.qos))
            scope = str(row.scope).strip().lower()
            if scope == 'terminal':
                provider.terminal_samples[int(row.id)] = sample
            elif scope == 'cell':
                provider.cell_samples[int(row.id)] = sample
            else:
                raise ValueError(f"Unknown sample scope: {row.scope}")

        logger.info(f"Loaded {len(provider.terminal_samples)} terminal and "
                    f"{len(provider.cell_samples)} cell quality samples")
        return provider

    @classmethod
    def from_csv(cls, csv_path: Union[str, Path]) -> 'TableQualityProvider':
        """
        Load a quality snapshot from a CSV file

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the table layout is invalid
        """
        path = Path(csv_path)
        if not path.exists():
            raise FileNotFoundError(f"Quality table not found: {csv_path}")
        return cls.from_dataframe(pd.read_csv(path))

    def to_dataframe(self) -> pd.DataFrame:
        rows = [
            {'scope': 'terminal', 'id': key, 'qoe': s.qoe, 'qos': s.qos}
            for key, s in self.terminal_samples.items()
        ] + [
            {'scope': 'cell', 'id': key, 'qoe': s.qoe, 'qos': s.qos}
            for key, s in self.cell_samples.items()
        ]
        return pd.DataFrame(rows, columns=list(self.REQUIRED_COLUMNS))


class LegacyDirectoryQualityProvider(InMemoryQualityProvider):
    """
    Snapshot of the legacy per-file quality layout.

    Layout under ``root``::

        qoeTorre<cell>, qosTorre<cell>      cell aggregates
        rnti/<rnti>-qoe.txt, rnti/<rnti>-qos.txt   terminal samples

    Each file holds whitespace-separated values; the last one is the
    current sample. Files are read at construction and on ``reload()``.
    """

    def __init__(self, root: Union[str, Path]):
        super().__init__()
        self.root = Path(root)
        self.reload()

    def reload(self):
        if not self.root.is_dir():
            raise FileNotFoundError(f"Quality directory not found: {self.root}")

        self.clear()
        cell_values: Dict[int, Dict[str, float]] = {}
        for path in self.root.iterdir():
            for prefix, metric in (('qoeTorre', 'qoe'), ('qosTorre', 'qos')):
                suffix = path.name[len(prefix):]
                if path.name.startswith(prefix) and suffix.isdigit():
                    value = self._last_value(path)
                    if value is not None:
                        cell_values.setdefault(int(suffix), {})[metric] = value

        terminal_values: Dict[int, Dict[str, float]] = {}
        rnti_dir = self.root / 'rnti'
        if rnti_dir.is_dir():
            for path in rnti_dir.glob('*-*.txt'):
                rnti, _, metric = path.stem.partition('-')
                if rnti.isdigit() and metric in ('qoe', 'qos'):
                    value = self._last_value(path)
                    if value is not None:
                        terminal_values.setdefault(int(rnti), {})[metric] = value

        for cell_id, values in cell_values.items():
            self.set_cell_quality(cell_id, values.get('qoe'), values.get('qos'))
        for terminal_id, values in terminal_values.items():
            self.set_terminal_quality(terminal_id, values.get('qoe'), values.get('qos'))

        logger.info(f"Imported legacy quality samples from {self.root}: "
                    f"{len(self.cell_samples)} cells, {len(self.terminal_samples)} terminals")

    @staticmethod
    def _last_value(path: Path) -> Optional[float]:
        tokens = path.read_text().split()
        if not tokens:
            return None
        try:
            return float(tokens[-1])
        except ValueError:
            logger.warning(f"Ignoring non-numeric quality value in {path}: {tokens[-1]!r}")
            return None
