"""
Schema Reconciler
Gives every record of a build the same attribute set

The schema is the union of attribute names over all surviving records, kept in
first-seen order so repeated builds over the same dataset produce identical
artifacts.
"""

import logging
from typing import Any, Dict, List, Sequence

from fpgen_etl.pipeline.constants import MISSING_VALUE_DATASET_TOKEN

logger = logging.getLogger(__name__)


class SchemaReconciler:
    """Union-of-keys schema with missing-token gap filling"""

    def __init__(self, missing_token: str = MISSING_VALUE_DATASET_TOKEN):
        self.missing_token = missing_token
        self.schema: List[str] = []

    @staticmethod
    def compute_schema(records: Sequence[Dict[str, Any]]) -> List[str]:
        attributes = {}
        for record in records:
            for key in record:
                attributes.setdefault(key, None)
        return list(attributes)

    def reconcile(self, records: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """New records carrying every schema attribute, gaps set to the missing token"""
        self.schema = self.compute_schema(records)

        reconciled = []
        filled = 0
        for record in records:
            reconciled_record = {}
            for attribute in self.schema:
                value = record.get(attribute)
                if value is None:
                    value = self.missing_token
                    filled += 1
                reconciled_record[attribute] = value
            reconciled.append(reconciled_record)

        logger.info(
            f"Reconciled {len(reconciled)} records onto {len(self.schema)} attributes "
            f"({filled} missing values filled)"
        )
        return reconciled
