"""
Dataset I/O

Reads and writes datasets as CSV or JSON Lines through pandas.

Column typing on load:
- numeric pandas dtypes become numeric attributes
- everything else becomes a nominal attribute whose labels are the distinct
  values in order of first appearance

A file can instead be read against an existing schema, so that a second
file shares the first one's nominal label indices.
"""

from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from membership_filter.schemas.data_models import Attribute, Dataset, Record, Schema
from membership_filter.utils.advanced_logging import get_logger
from membership_filter.utils.error_handling import DataFormatError

logger = get_logger(__name__)

PathLike = Union[str, Path]


def parse_class_index(spec: Optional[str], num_attributes: int) -> int:
    """
    Resolve a label column spec to a 0-based index.

    Args:
        spec: "first", "last", a 1-based index, or None/"" for no label
        num_attributes: Number of attributes in the schema

    Returns:
        0-based index, or -1 for no label

    Raises:
        DataFormatError: If the spec is not valid for the schema
    """
    if spec is None or spec == "":
        return -1
    if spec == "first":
        index = 0
    elif spec == "last":
        index = num_attributes - 1
    else:
        try:
            index = int(spec) - 1
        except ValueError as e:
            raise DataFormatError(f"Invalid class index '{spec}'") from e
    if not 0 <= index < num_attributes:
        raise DataFormatError(
            f"Class index '{spec}' out of range for {num_attributes} attributes",
            details={"class_index": spec},
        )
    return index


def _read_frame(path: Path) -> pd.DataFrame:
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return pd.read_csv(path)
    if suffix in (".jsonl", ".ndjson"):
        return pd.read_json(path, lines=True)
    raise DataFormatError(
        f"Unsupported dataset format '{suffix}'",
        details={"path": str(path)},
    )


def _typed_columns(frame: pd.DataFrame) -> Tuple[List[Attribute], List[np.ndarray]]:
    """Infer attributes from the frame's dtypes."""
    attributes = []
    columns = []
    for name in frame.columns:
        series = frame[name]
        if pd.api.types.is_numeric_dtype(series) and not pd.api.types.is_bool_dtype(series):
            attributes.append(Attribute.numeric(str(name)))
            columns.append(series.astype(np.float64).to_numpy())
        else:
            present = series.dropna().astype(str)
            attribute = Attribute.nominal(str(name), list(pd.unique(present)))
            attributes.append(attribute)
            columns.append(_nominal_column(series, attribute))
    return attributes, columns


def _columns_for_schema(frame: pd.DataFrame, schema: Schema) -> List[np.ndarray]:
    """Read the frame's columns against an existing schema."""
    names = [str(name) for name in frame.columns]
    expected = [attribute.name for attribute in schema.attributes]
    if names != expected:
        raise DataFormatError(
            f"Columns {names} do not match schema '{schema.relation_name}'",
            details={"expected": expected, "found": names},
        )

    columns = []
    for name, attribute in zip(frame.columns, schema.attributes):
        series = frame[name]
        if attribute.is_nominal:
            columns.append(_nominal_column(series, attribute))
            continue
        try:
            columns.append(pd.to_numeric(series).astype(np.float64).to_numpy())
        except (TypeError, ValueError) as e:
            raise DataFormatError(
                f"Attribute '{attribute.name}' must be numeric",
                details={"attribute": attribute.name},
            ) from e
    return columns


def _nominal_column(series: pd.Series, attribute: Attribute) -> np.ndarray:
    values = np.empty(len(series), dtype=np.float64)
    for i, value in enumerate(series):
        if pd.isna(value):
            values[i] = np.nan
            continue
        index = attribute.index_of_value(str(value))
        if index < 0:
            raise DataFormatError(
                f"Unknown value '{value}' for attribute '{attribute.name}'",
                details={"attribute": attribute.name, "values": attribute.values},
            )
        values[i] = float(index)
    return values


def dataset_from_frame(
    frame: pd.DataFrame,
    relation_name: str = "dataset",
    class_index: Optional[str] = None,
    schema: Optional[Schema] = None,
) -> Dataset:
    """
    Convert a DataFrame into a Dataset.

    Args:
        frame: Source data, one column per attribute
        relation_name: Relation name of the result
        class_index: Label column spec; ignored when ``schema`` is given
        schema: Existing schema to read the frame against, so that nominal
            labels map to the same indices (e.g. test data for a fitted filter)

    Raises:
        DataFormatError: If the frame does not fit ``schema``
    """
    if schema is None:
        attributes, columns = _typed_columns(frame)
        schema = Schema(
            relation_name=relation_name,
            attributes=attributes,
            class_index=parse_class_index(class_index, len(attributes)),
        )
    else:
        columns = _columns_for_schema(frame, schema)
        schema = Schema(
            relation_name=relation_name,
            attributes=[attribute.copy() for attribute in schema.attributes],
            class_index=schema.class_index,
        )

    dataset = Dataset(schema)
    if columns:
        matrix = np.column_stack(columns)
        for row in matrix:
            dataset.add(Record(row))
    return dataset


def dataset_to_frame(dataset: Dataset) -> pd.DataFrame:
    """Convert a Dataset into a DataFrame with nominal labels restored."""
    names = [attribute.name for attribute in dataset.schema.attributes]
    rows = [record.formatted(dataset.schema) for record in dataset]
    return pd.DataFrame(rows, columns=names)


def load_dataset(
    path: PathLike,
    class_index: Optional[str] = None,
    schema: Optional[Schema] = None,
) -> Dataset:
    """
    Load a dataset from CSV or JSON Lines.

    Args:
        path: Input file
        class_index: Label column spec ("first", "last", 1-based index)
        schema: Schema to read the file against instead of inferring one

    Raises:
        DataFormatError: If the file is missing, unreadable, of unknown type,
            or does not fit the given schema
    """
    path = Path(path)
    if not path.exists():
        raise DataFormatError(f"Dataset file not found: {path}", details={"path": str(path)})

    try:
        frame = _read_frame(path)
    except (ValueError, pd.errors.ParserError) as e:
        raise DataFormatError(f"Cannot read dataset {path}: {e}", details={"path": str(path)}) from e

    dataset = dataset_from_frame(
        frame, relation_name=path.stem, class_index=class_index, schema=schema
    )
    logger.info(
        "dataset_loaded",
        path=str(path),
        records=len(dataset),
        attributes=dataset.num_attributes,
    )
    return dataset


def save_dataset(dataset: Dataset, path: PathLike) -> None:
    """
    Write a dataset as CSV or JSON Lines, chosen by file extension.

    Raises:
        DataFormatError: If the extension is not supported
    """
    path = Path(path)
    frame = dataset_to_frame(dataset)
    suffix = path.suffix.lower()

    path.parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".csv":
        frame.to_csv(path, index=False)
    elif suffix in (".jsonl", ".ndjson"):
        frame.to_json(path, orient="records", lines=True)
    else:
        raise DataFormatError(
            f"Unsupported dataset format '{suffix}'",
            details={"path": str(path)},
        )

    logger.info("dataset_saved", path=str(path), records=len(dataset))
