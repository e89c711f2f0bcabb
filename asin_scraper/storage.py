import json
from pathlib import Path
from typing import Sequence

import pandas as pd

from .models import ExtractionResult

BULLET_SEPARATOR = " | "

# Column order of the CSV export.
CSV_COLUMNS = (
    "ASIN", "Title", "Price", "Rating", "Reviews", "About", "Description",
    "Image", "Availability", "BSR", "URL", "Attributes", "Error",
)


def _row(r: ExtractionResult) -> dict:
    return {
        "ASIN": r.identifier,
        "Title": r.title,
        "Price": r.price,
        "Rating": r.rating,
        "Reviews": r.review_count,
        "About": BULLET_SEPARATOR.join(r.bullet_points) if r.bullet_points else None,
        "Description": r.product_description,
        "Image": r.image,
        "Availability": r.availability,
        "BSR": r.best_seller_rank,
        "URL": r.url,
        "Attributes": json.dumps(r.attribute_table, ensure_ascii=False) if r.attribute_table else None,
        "Error": r.error_message,
    }


def results_frame(results: Sequence[ExtractionResult]) -> pd.DataFrame:
    """Flatten results into one row per identifier with the fixed CSV columns."""
    return pd.DataFrame([_row(r) for r in results], columns=list(CSV_COLUMNS))


def save_df(df: pd.DataFrame, name: str, out_dir: str | Path) -> Path:
    """
    Persist a DataFrame as CSV under <out_dir>/<name>.csv.

    An empty frame still produces a header-only file so every run leaves
    both artifacts behind.
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / f"{name}.csv"
    df.to_csv(out_path, index=False)
    return out_path


def save_json(results: Sequence[ExtractionResult], name: str, out_dir: str | Path) -> Path:
    """Persist results as a JSON array under <out_dir>/<name>.json."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / f"{name}.json"
    payload = [r.to_record() for r in results]
    out_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    return out_path
