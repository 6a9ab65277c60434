import csv
import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from distributor.models.Claim import TreeData
from distributor.models.Config import Config

TREE_FILE = "merkle-tree-data.json"


@dataclass
class Writer:
    config: Config

    @property
    def path(self) -> str:
        return self.config.path

    @property
    def csv_path(self) -> str:
        return f"{self.path}/csv"

    @property
    def json_path(self) -> str:
        return f"{self.path}/json"

    @property
    def tree_path(self) -> str:
        return f"{self.path}/{TREE_FILE}"

    @staticmethod
    def flatten_json(y: dict) -> dict:
        out = {}

        def flatten(x, name=""):
            # nested dicts become prefix_key columns
            if type(x) is dict:
                for a in x:
                    flatten(x[a], name + a + "_")
            elif type(x) is list:
                for i, a in enumerate(x):
                    flatten(a, name + str(i) + "_")
            else:
                out[name[:-1]] = x

        flatten(y)
        return out

    def flatten_json_array(self, data: list[dict]) -> list[dict]:
        return [self.flatten_json(item) for item in data]

    @staticmethod
    def write_csv(data: list[dict], path: str, fieldnames) -> None:
        with open(path, "w+", newline="") as f:
            writer = csv.DictWriter(
                f, delimiter=",", fieldnames=list(fieldnames), extrasaction="ignore"
            )
            writer.writeheader()
            writer.writerows(data)

    # create the season directory with csv and json subfolders if it doesn't exist
    def _create_dir(self) -> None:
        Path(self.path).mkdir(parents=True, exist_ok=True)
        Path(self.csv_path).mkdir(parents=True, exist_ok=True)
        Path(self.json_path).mkdir(parents=True, exist_ok=True)

    def to_csv(self, data: list[dict], name: str, fieldnames) -> None:
        self._create_dir()
        self.write_csv(data, f"{self.csv_path}/{name}.csv", fieldnames)

    def to_json(self, data: Any, name: str) -> None:
        self._create_dir()
        with open(f"{self.json_path}/{name}.json", "w") as f:
            json.dump(data, f, indent=4)

    def to_csv_and_json(self, data, name: str) -> None:
        if isinstance(data, list):
            csv_data = self.flatten_json_array(data)
            keys = csv_data[0].keys() if len(csv_data) > 0 else []
        else:
            csv_data = [self.flatten_json(data)]
            keys = csv_data[0].keys()
        self.to_json(data, name)
        self.to_csv(csv_data, name, keys)

    def write_tree_data(self, tree_data: TreeData) -> str:
        """
        Write the season snapshot. The file is written to a temporary file in the same
        directory and renamed over the target, so a failed write never leaves a partial snapshot.
        """
        self._create_dir()
        fd, tmp = tempfile.mkstemp(dir=self.path, prefix=".tree-", suffix=".json")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(tree_data.model_dump(mode="json"), f, indent=2)
            os.replace(tmp, self.tree_path)
        except BaseException:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise
        return self.tree_path

    @staticmethod
    def read_tree_data(path: str) -> TreeData:
        with open(path) as f:
            return TreeData.model_validate(json.load(f))
