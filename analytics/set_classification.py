from collections.abc import Mapping
from typing import Any

import pandas as pd


def _set_type_of(record: Any) -> Any:
    if isinstance(record, Mapping):
        return record.get("set_type")
    if isinstance(record, str) or record is None:
        return record
    return getattr(record, "set_type", None)


def is_warmup_set(record: Any) -> bool:
    """
    True when the set-type tag marks a warmup.

    Accepts the raw tag, a mapping with a ``set_type`` key, or any object
    with a ``set_type`` attribute. Empty/missing tags are working sets.
    """
    raw = _set_type_of(record)
    if raw is None or (isinstance(raw, float) and pd.isna(raw)):
        return False
    tag = str(raw).strip().lower()
    if not tag:
        return False
    if tag == "w":
        return True
    return "warmup" in tag


def tag_working_sets(df: pd.DataFrame) -> pd.DataFrame:
    """Add ``is_warmup`` and ``is_working_set`` columns from ``set_type``."""
    out = df.copy()
    if "set_type" not in out.columns:
        out["set_type"] = ""
    out["is_warmup"] = out["set_type"].map(is_warmup_set).astype(bool)
    out["is_working_set"] = ~out["is_warmup"]
    return out


def working_sets(df: pd.DataFrame) -> pd.DataFrame:
    if df is None or df.empty:
        return df
    if "is_warmup" not in df.columns:
        df = tag_working_sets(df)
    return df[~df["is_warmup"].astype(bool)]
