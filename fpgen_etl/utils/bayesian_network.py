"""
Bayesian network definitions for the generator models

A network file is a zip archive holding a single JSON document::

    {"nodes": [{"name": ..., "parentNames": [...], "possibleValues": [...],
                "conditionalProbabilities": {...}}, ...]}

Structure files ship with empty probability tables; training fills them from
a dataset and the result is saved as a network definition the generators load.
Conditional probabilities are nested by parent value under ``deeper`` keys,
one level per parent, with relative value frequencies at the leaves.
"""

import json
import logging
import os
import tempfile
import zipfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

logger = logging.getLogger(__name__)

NETWORK_DEFINITION_ENTRY = "network.json"


class BayesianNode:
    """One node of the network and its conditional probability table"""

    def __init__(self, node_definition: Dict[str, Any]):
        self.node_definition = node_definition

    @property
    def name(self) -> str:
        return self.node_definition["name"]

    @property
    def parent_names(self) -> List[str]:
        return self.node_definition.get("parentNames", [])

    def set_probabilities_according_to_data(
        self,
        data: pd.DataFrame,
        possible_parent_values: Optional[Dict[str, Sequence[str]]] = None,
    ):
        self.node_definition["possibleValues"] = [str(v) for v in data[self.name].unique()]
        self.node_definition["conditionalProbabilities"] = self._conditional_probabilities(
            data, possible_parent_values or {}, 0
        )

    def _conditional_probabilities(
        self,
        data: pd.DataFrame,
        possible_parent_values: Dict[str, Sequence[str]],
        depth: int,
    ) -> Dict[str, Any]:
        if depth == len(self.parent_names):
            frequencies = data[self.name].value_counts(normalize=True, sort=False)
            return {str(value): float(p) for value, p in frequencies.items()}

        parent_name = self.parent_names[depth]
        parent_values: Iterable[str] = possible_parent_values.get(
            parent_name, data[parent_name].unique()
        )

        deeper = {}
        for parent_value in parent_values:
            subset = data[data[parent_name] == parent_value]
            if not subset.empty:
                deeper[str(parent_value)] = self._conditional_probabilities(
                    subset, possible_parent_values, depth + 1
                )
        return {"deeper": deeper}


class BayesianNetwork:
    """Network loaded from a zipped definition, trainable from flat records"""

    def __init__(self, path: Path):
        self.path = Path(path)
        definition = self._read_definition(self.path)

        self.nodes_in_sampling_order = [BayesianNode(node) for node in definition["nodes"]]
        self.nodes_by_name = {node.name: node for node in self.nodes_in_sampling_order}
        logger.debug(f"Loaded network {self.path} with {len(self.nodes_by_name)} nodes")

    @staticmethod
    def _read_definition(path: Path) -> Dict[str, Any]:
        with zipfile.ZipFile(path) as archive:
            entries = archive.namelist()
            if not entries:
                raise ValueError(f"Network file {path} is empty")
            return json.loads(archive.read(entries[0]).decode("utf-8"))

    @property
    def node_names(self) -> List[str]:
        """Declared attribute names, in sampling order"""
        return list(self.nodes_by_name)

    def set_probabilities_according_to_data(
        self,
        records: Sequence[Dict[str, str]],
        possible_parent_values: Optional[Dict[str, Sequence[str]]] = None,
    ):
        """Replace every node's probability table with frequencies from the records"""
        data = pd.DataFrame.from_records(list(records))
        logger.info(f"Training {len(self.nodes_by_name)} nodes on {len(data)} records")

        for node in self.nodes_in_sampling_order:
            node.set_probabilities_according_to_data(data, possible_parent_values)

    def get_network_definition(self) -> Dict[str, Any]:
        return {"nodes": [node.node_definition for node in self.nodes_in_sampling_order]}

    def save_network_definition(self, path: Path):
        """Write the definition zip; the target only appears once fully written"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
        os.close(fd)
        try:
            with zipfile.ZipFile(tmp_name, "w", compression=zipfile.ZIP_DEFLATED) as archive:
                archive.writestr(
                    NETWORK_DEFINITION_ENTRY, json.dumps(self.get_network_definition())
                )
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info(f"Saved network definition to {path}")
