"""
data_models.py

Data models for the cluster membership filter.
Defines attributes, schemas, records and datasets exchanged between filters
and clustering algorithms.

Schema Design:
- Attribute/Schema: Pydantic models describing the columns
- Record: ordered float values; nominal values are stored as the index of
  their label, missing values as NaN
- Dataset: schema plus an ordered list of records
"""

import math
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Sequence, Union

import numpy as np
from pydantic import BaseModel, Field, model_validator


# =============================================================================
# ENUMS
# =============================================================================


class AttributeType(str, Enum):
    """Supported attribute types."""

    NUMERIC = "numeric"
    NOMINAL = "nominal"


# =============================================================================
# SCHEMA MODELS
# =============================================================================


class Attribute(BaseModel):
    """A named, typed column."""

    name: str = Field(..., description="Attribute name")
    type: AttributeType = Field(default=AttributeType.NUMERIC, description="Attribute type")
    values: List[str] = Field(default_factory=list, description="Category labels (nominal only)")

    @model_validator(mode="after")
    def _check_values(self) -> "Attribute":
        if self.type == AttributeType.NUMERIC and self.values:
            raise ValueError(f"Numeric attribute '{self.name}' cannot declare values")
        return self

    @classmethod
    def numeric(cls, name: str) -> "Attribute":
        return cls(name=name, type=AttributeType.NUMERIC)

    @classmethod
    def nominal(cls, name: str, values: Sequence[str]) -> "Attribute":
        return cls(name=name, type=AttributeType.NOMINAL, values=list(values))

    @property
    def is_nominal(self) -> bool:
        return self.type == AttributeType.NOMINAL

    def index_of_value(self, label: str) -> int:
        """Index of a nominal label, or -1 if unknown."""
        try:
            return self.values.index(label)
        except ValueError:
            return -1

    def format_value(self, value: float) -> Optional[Union[float, str]]:
        """Render a stored value: nominal label, float, or None when missing."""
        if value is None or math.isnan(value):
            return None
        if self.is_nominal:
            return self.values[int(value)]
        return float(value)

    def copy(self) -> "Attribute":
        return self.model_copy(deep=True)


class Schema(BaseModel):
    """Ordered attributes plus an optional label (class) column."""

    relation_name: str = Field(default="dataset", description="Relation name")
    attributes: List[Attribute] = Field(default_factory=list, description="Ordered attributes")
    class_index: int = Field(default=-1, description="Label column index, -1 if none")

    @model_validator(mode="after")
    def _check_class_index(self) -> "Schema":
        if not -1 <= self.class_index < len(self.attributes):
            raise ValueError(
                f"class_index {self.class_index} out of range for "
                f"{len(self.attributes)} attributes"
            )
        return self

    @property
    def num_attributes(self) -> int:
        return len(self.attributes)

    @property
    def has_class(self) -> bool:
        return self.class_index >= 0

    def attribute(self, index: int) -> Attribute:
        return self.attributes[index]

    def class_attribute(self) -> Attribute:
        if not self.has_class:
            raise ValueError("Schema has no class attribute")
        return self.attributes[self.class_index]

    def index_of(self, name: str) -> int:
        """Index of the attribute with the given name, or -1."""
        for i, attribute in enumerate(self.attributes):
            if attribute.name == name:
                return i
        return -1

    def copy(self) -> "Schema":
        return self.model_copy(deep=True)


# =============================================================================
# RECORDS AND DATASETS
# =============================================================================


class Record:
    """A row of values with a weight."""

    __slots__ = ("values", "weight")

    def __init__(self, values: Iterable[float], weight: float = 1.0):
        self.values = np.asarray(list(values), dtype=np.float64)
        self.weight = float(weight)

    def __len__(self) -> int:
        return len(self.values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return (
            self.weight == other.weight
            and self.values.shape == other.values.shape
            and bool(np.array_equal(self.values, other.values, equal_nan=True))
        )

    def __repr__(self) -> str:
        return f"Record(values={self.values.tolist()}, weight={self.weight})"

    def value(self, index: int) -> float:
        return float(self.values[index])

    def is_missing(self, index: int) -> bool:
        return bool(np.isnan(self.values[index]))

    def class_value(self, schema: Schema) -> float:
        """Stored value of the label column of ``schema``."""
        return self.value(schema.class_index)

    def formatted(self, schema: Schema) -> List[Optional[Union[float, str]]]:
        """Values rendered through the schema's attributes."""
        return [
            attribute.format_value(value)
            for attribute, value in zip(schema.attributes, self.values)
        ]

    def copy(self) -> "Record":
        return Record(self.values.copy(), self.weight)


class Dataset:
    """A schema plus an ordered list of records."""

    def __init__(self, schema: Schema, records: Optional[Iterable[Record]] = None):
        self.schema = schema
        self.records: List[Record] = []
        for record in records or []:
            self.add(record)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)

    def __getitem__(self, index: int) -> Record:
        return self.records[index]

    @property
    def relation_name(self) -> str:
        return self.schema.relation_name

    @property
    def num_attributes(self) -> int:
        return self.schema.num_attributes

    def add(self, record: Record) -> None:
        if len(record) != self.schema.num_attributes:
            raise ValueError(
                f"Record has {len(record)} values, schema "
                f"'{self.schema.relation_name}' has {self.schema.num_attributes} attributes"
            )
        self.records.append(record)

    def to_numpy(self) -> np.ndarray:
        """Values as an (N x D) float matrix."""
        if not self.records:
            return np.empty((0, self.schema.num_attributes), dtype=np.float64)
        return np.vstack([record.values for record in self.records])

    def weights(self) -> np.ndarray:
        return np.array([record.weight for record in self.records], dtype=np.float64)

    @classmethod
    def from_rows(
        cls,
        schema: Schema,
        rows: Iterable[Sequence[Union[float, str, None]]],
        weights: Optional[Sequence[float]] = None,
    ) -> "Dataset":
        """
        Build a dataset from rows of raw values.

        Nominal values may be given as labels; None marks a missing value.
        """
        dataset = cls(schema)
        for i, row in enumerate(rows):
            values = []
            for attribute, raw in zip(schema.attributes, row):
                if raw is None:
                    values.append(np.nan)
                elif attribute.is_nominal and isinstance(raw, str):
                    index = attribute.index_of_value(raw)
                    if index < 0:
                        raise ValueError(f"Unknown value '{raw}' for attribute '{attribute.name}'")
                    values.append(float(index))
                else:
                    values.append(float(raw))
            weight = weights[i] if weights is not None else 1.0
            dataset.add(Record(values, weight))
        return dataset
