import pandas as pd
from pathlib import Path
from typing import Any, Dict

from utils.exceptions import DataValidationError

READABLE_SUFFIXES = (".parquet", ".xlsx", ".xls", ".csv")


def excel_copy_enabled(config: Dict[str, Any]) -> bool:
    """True when ``outputs.save_excel_copy`` asks for an .xlsx next to every result table."""
    return bool(config.get("outputs", {}).get("save_excel_copy", False))


def save_dataframe(df: pd.DataFrame, path: Path, *, excel_copy: bool = False, index: bool = False) -> Path:
    """
    Save a DataFrame to Parquet with an optional Excel copy beside it.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_parquet(path, index=index)

    if excel_copy:
        df.to_excel(path.with_suffix(".xlsx"), index=index)

    return path


def save_result_table(df: pd.DataFrame, path: Path, config: Dict[str, Any]) -> Path:
    """
    Persist an engine result table, honouring the run's ``outputs`` settings.
    """
    return save_dataframe(df, path, excel_copy=excel_copy_enabled(config))


def read_dataframe(path: Path) -> pd.DataFrame:
    """
    Load a dataset from Parquet/Excel/CSV based on file extension.

    Raises:
        DataValidationError: The file is missing or its extension is not readable.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in READABLE_SUFFIXES:
        raise DataValidationError(
            f"Unsupported file extension for reading: {suffix} (expected one of {', '.join(READABLE_SUFFIXES)})"
        )
    if not path.is_file():
        raise DataValidationError(f"Dataset not found: {path}")

    if suffix == ".parquet":
        return pd.read_parquet(path)
    if suffix == ".csv":
        return pd.read_csv(path)
    return pd.read_excel(path)
