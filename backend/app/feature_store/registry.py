from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import logging
import numpy as np
import pandas as pd

from ..ml.history_generator import HISTORY_DAYS, generate_history
from ..models.history import HistoricalData


logger = logging.getLogger(__name__)


def history_key(product_id: str, plant_id: str) -> str:
    return f"{product_id}-{plant_id}"


class HistoricalDataStore:
    """Read-shared daily history keyed by ``productId-plantId``.

    Each key is written exactly once; records are frozen models held in a
    tuple so readers cannot alter a series.
    """

    def __init__(self) -> None:
        self._series: Dict[str, Tuple[HistoricalData, ...]] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._series

    def __len__(self) -> int:
        return len(self._series)

    def add_series(self, product_id: str, plant_id: str, records: Sequence[HistoricalData]) -> None:
        key = history_key(product_id, plant_id)
        if key in self._series:
            raise ValueError(f"History for {key} is already loaded")
        ordered = tuple(sorted(records, key=lambda r: r.date))
        dates = [r.date for r in ordered]
        if len(set(dates)) != len(dates):
            raise ValueError(f"History for {key} has more than one record per day")
        self._series[key] = ordered

    def populate(
        self,
        product_ids: Iterable[str],
        plant_ids: Iterable[str],
        *,
        end_date: Optional[date] = None,
        days: int = HISTORY_DAYS,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        plants = list(plant_ids)
        for product_id in product_ids:
            for plant_id in plants:
                if history_key(product_id, plant_id) in self._series:
                    continue
                records = generate_history(product_id, plant_id, end_date=end_date, days=days, rng=rng)
                self.add_series(product_id, plant_id, records)
        logger.info("History store holds %d series", len(self._series))

    def get(self, product_id: str, plant_id: str) -> Optional[Tuple[HistoricalData, ...]]:
        return self._series.get(history_key(product_id, plant_id))

    def frame(self, product_id: str, plant_id: str) -> pd.DataFrame:
        records = self.get(product_id, plant_id)
        if not records:
            return pd.DataFrame(columns=["date", "demand", "supply", "stock", "price"])
        rows: List[dict] = [
            {
                "date": pd.Timestamp(r.date),
                "demand": r.demand,
                "supply": r.supply,
                "stock": r.stock,
                "price": r.price,
            }
            for r in records
        ]
        return pd.DataFrame(rows).set_index("date", drop=False)
