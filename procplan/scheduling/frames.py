"""
ProcPlan - Tabular helpers
==========================

pandas DataFrame conversions for export collaborators and spreadsheet-style
inputs.

- schedule_to_frame: one row per ScheduleItem
- coherence_to_frame: one row per CoherenceResult
- lists_from_frame / orders_from_frame: one row per line, grouped by entity id
  and validated through the snapshot schemas
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from .snapshots import ListSnapshot, OrderSnapshot
from .types import ListRecord, OrderRecord, ScheduleItem

logger = logging.getLogger(__name__)

SCHEDULE_COLUMNS = [
    "id", "label", "kind", "start", "end", "amount", "state", "criticality",
    "days_remaining", "progress_percent", "list_id", "project_id", "resource_id",
]

COHERENCE_COLUMNS = [
    "list_id", "list_amount", "orders_amount", "amount_deviation",
    "deviation_percent", "is_coherent", "alerts", "late_orders",
]


def _clean(value: Any) -> Any:
    """NaN / NaT -> None; pandas timestamps -> date."""
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    if value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, np.generic):
        return value.item()
    return value


def _as_text(value: Any) -> Any:
    if value is None or isinstance(value, date):
        return value
    return str(value)


def schedule_to_frame(items: Iterable[ScheduleItem], today: Optional[date] = None) -> pd.DataFrame:
    """Schedule items as a DataFrame, sorted by start date."""
    today = today or date.today()
    rows = []
    for item in items:
        row = item.to_dict(today)
        row["start"] = item.start
        row["end"] = item.end
        rows.append({col: row.get(col) for col in SCHEDULE_COLUMNS})
    if not rows:
        return pd.DataFrame(columns=SCHEDULE_COLUMNS)
    df = pd.DataFrame(rows, columns=SCHEDULE_COLUMNS)
    return df.sort_values(["start", "id"]).reset_index(drop=True)


def coherence_to_frame(results: Iterable[Any]) -> pd.DataFrame:
    """CoherenceResults as a DataFrame (alert texts joined with '; ')."""
    rows = []
    for result in results:
        rows.append({
            "list_id": result.list_id,
            "list_amount": result.list_amount,
            "orders_amount": result.orders_amount,
            "amount_deviation": result.amount_deviation,
            "deviation_percent": result.deviation_percent,
            "is_coherent": result.is_coherent,
            "alerts": "; ".join(result.alerts),
            "late_orders": len(result.late_order_ids),
        })
    return pd.DataFrame(rows, columns=COHERENCE_COLUMNS)


def _group_rows(
    df: pd.DataFrame,
    id_col: str,
    header_cols: Sequence[str],
    line_cols: Dict[str, str],
) -> List[Dict[str, Any]]:
    """
    Collapse line rows into entity payloads.

    Header values are taken from the first row of each group; a group whose
    line columns are all empty yields no line (an entity with no lines).
    """
    payloads = []
    for entity_id, group in df.groupby(id_col, sort=False):
        first = group.iloc[0]
        payload: Dict[str, Any] = {"id": str(entity_id)}
        for col in header_cols:
            if col in group.columns:
                payload[col] = _as_text(_clean(first[col]))
        lines = []
        for _, row in group.iterrows():
            line = {key: _clean(row[col]) for col, key in line_cols.items() if col in group.columns}
            for key in line:
                if key.endswith("_id"):
                    line[key] = _as_text(line[key])
            if any(v is not None for v in line.values()):
                lines.append({k: v for k, v in line.items() if v is not None})
        payload["lines"] = lines
        payloads.append({k: v for k, v in payload.items() if v is not None})
    return payloads


def lists_from_frame(df: pd.DataFrame, id_col: str = "list_id") -> List[ListRecord]:
    """
    Build ListRecords from a line-level DataFrame.

    Expected columns: list_id, code, required_date, state, lead_time_days,
    quantity, unit_price (optional: line_id, project_id, resource_id).
    """
    if df.empty:
        return []
    df = df.copy()
    df["required_date"] = pd.to_datetime(df["required_date"], errors="coerce")
    payloads = _group_rows(
        df,
        id_col,
        header_cols=["code", "required_date", "state", "project_id", "resource_id"],
        line_cols={
            "line_id": "line_id",
            "lead_time_days": "lead_time_days",
            "quantity": "quantity",
            "unit_price": "unit_price",
        },
    )
    records = [ListSnapshot.model_validate(p).to_record() for p in payloads]
    logger.info(f"Loaded {len(records)} lists from {len(df)} line rows")
    return records


def orders_from_frame(df: pd.DataFrame, id_col: str = "order_id") -> List[OrderRecord]:
    """
    Build OrderRecords from a line-level DataFrame.

    Expected columns: order_id, code, required_date, list_id, state,
    lead_time_days, quantity_ordered, unit_price (optional: list_line_id,
    project_id, resource_id).
    """
    if df.empty:
        return []
    df = df.copy()
    df["required_date"] = pd.to_datetime(df["required_date"], errors="coerce")
    payloads = _group_rows(
        df,
        id_col,
        header_cols=["code", "required_date", "list_id", "state", "project_id", "resource_id"],
        line_cols={
            "list_line_id": "list_line_id",
            "lead_time_days": "lead_time_days",
            "quantity_ordered": "quantity_ordered",
            "unit_price": "unit_price",
        },
    )
    records = [OrderSnapshot.model_validate(p).to_record() for p in payloads]
    logger.info(f"Loaded {len(records)} orders from {len(df)} line rows")
    return records
