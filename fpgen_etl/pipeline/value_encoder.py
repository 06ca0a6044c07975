"""
Value Encoder
Flattens browser-fingerprint attribute values into trainer-ready strings

Every cell becomes one of three variants:
- Missing: null, empty string or absent value, written as the missing token
- PlainString: a string value, written unchanged
- EncodedValue: any other value, written as the stringified prefix followed by
  its compact JSON text so it can be told apart from plain text and decoded
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Union

from fpgen_etl.pipeline.constants import (
    MISSING_VALUE_DATASET_TOKEN,
    PLUGIN_CHARACTERISTICS_ATTRIBUTES,
    PLUGINS_DATA_ATTRIBUTE,
    STRINGIFIED_PREFIX,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Missing:
    def to_cell(self) -> str:
        return MISSING_VALUE_DATASET_TOKEN


@dataclass(frozen=True)
class PlainString:
    value: str

    def to_cell(self) -> str:
        return self.value


@dataclass(frozen=True)
class EncodedValue:
    type_tag: str
    serialized: str

    def to_cell(self) -> str:
        return STRINGIFIED_PREFIX + self.serialized


CellValue = Union[Missing, PlainString, EncodedValue]


def is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def encode_value(value: Any) -> CellValue:
    """Classify a raw attribute value into its cell variant"""
    if is_missing(value):
        return Missing()
    if isinstance(value, str):
        return PlainString(value)
    serialized = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return EncodedValue(type(value).__name__, serialized)


def decode_cell(cell: str) -> Any:
    """Inverse of encode_value(...).to_cell(); the missing token decodes to None"""
    if cell == MISSING_VALUE_DATASET_TOKEN:
        return None
    if cell.startswith(STRINGIFIED_PREFIX):
        return json.loads(cell[len(STRINGIFIED_PREFIX):])
    return cell


def has_plugin_data(value: Any) -> bool:
    if is_missing(value):
        return False
    if isinstance(value, (list, dict)) and not value:
        return False
    return True


class ValueEncoder:
    """Fingerprint-path encoder: plugin extraction, then per-attribute encoding"""

    def __init__(self, progress_interval: int = 1000):
        self.progress_interval = max(1, progress_interval)
        self.stats = {
            "records_encoded": 0,
            "records_with_plugins": 0,
            "encoded_cells": 0,
            "missing_cells": 0,
        }

    def extract_plugins(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Move plugins/mimeTypes into a nested pluginsData attribute"""
        record = dict(record)
        plugin_characteristics = {}
        for attribute in PLUGIN_CHARACTERISTICS_ATTRIBUTES:
            if attribute in record:
                value = record.pop(attribute)
                if has_plugin_data(value):
                    plugin_characteristics[attribute] = value

        if plugin_characteristics:
            self.stats["records_with_plugins"] += 1
            record[PLUGINS_DATA_ATTRIBUTE] = plugin_characteristics
        else:
            record[PLUGINS_DATA_ATTRIBUTE] = None
        return record

    def encode_record(self, record: Dict[str, Any]) -> Dict[str, str]:
        encoded = {}
        for attribute, value in self.extract_plugins(record).items():
            cell = encode_value(value)
            if isinstance(cell, Missing):
                self.stats["missing_cells"] += 1
            elif isinstance(cell, EncodedValue):
                self.stats["encoded_cells"] += 1
            encoded[attribute] = cell.to_cell()

        self.stats["records_encoded"] += 1
        return encoded

    def encode_records(self, records: Sequence[Dict[str, Any]]) -> List[Dict[str, str]]:
        encoded = []
        for index, record in enumerate(records):
            if index % self.progress_interval == 0:
                logger.info(f"Processing record {index} of {len(records)}")
            encoded.append(self.encode_record(record))
        return encoded
