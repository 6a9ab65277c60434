import json
import os

import pytest

from distributor.config import create_conf
from distributor.models import Writer
from distributor.run import build_tree_data
from distributor.test.conftest import STUBS


@pytest.fixture
def writer(tmp_path) -> Writer:
    return Writer(create_conf(str(STUBS / "config/input.json"), reports_dir=str(tmp_path)))


def test_create_dirs(writer: Writer):
    writer._create_dir()
    assert os.path.exists(writer.path)
    assert os.path.exists(writer.csv_path)
    assert os.path.exists(writer.json_path)


@pytest.mark.parametrize(
    "data, assert_csv",
    [
        [
            [
                {"key1": 1, "key2": 2},
                {"key1": 3, "key2": 4},
            ],
            "key1,key2\n1,2\n3,4\n",
        ],
        [
            {
                "key1": 1,
                "key2": 2,
            },
            "key1,key2\n1,2\n",
        ],
        [
            [{"address": "0x1", "rewards": {"amount": 10}}],
            "address,rewards_amount\n0x1,10\n",
        ],
    ],
)
def test_write_csv_and_json(writer: Writer, data, assert_csv):
    writer.to_csv_and_json(data=data, name="test")

    with open(f"{writer.csv_path}/test.csv", "r", newline="") as f:
        csv_data = f.read().replace("\r\n", "\n")
    assert csv_data == assert_csv

    with open(f"{writer.json_path}/test.json", "r") as f:
        json_data = json.load(f)
    assert json_data == data


def test_write_tree_data(writer: Writer, facts):
    _, tree_data = build_tree_data(facts)

    path = writer.write_tree_data(tree_data)

    assert path == writer.tree_path
    assert Writer.read_tree_data(path) == tree_data
    assert [f for f in os.listdir(writer.path) if f.startswith(".tree-")] == []


def test_failed_write_leaves_previous_snapshot(writer: Writer, facts, monkeypatch):
    _, first = build_tree_data(facts)
    writer.write_tree_data(first)

    def broken_dump(*args, **kwargs):
        raise OSError("disk full")

    _, second = build_tree_data(facts[:1])
    monkeypatch.setattr(json, "dump", broken_dump)
    with pytest.raises(OSError):
        writer.write_tree_data(second)

    monkeypatch.undo()
    assert Writer.read_tree_data(writer.tree_path) == first
    assert [f for f in os.listdir(writer.path) if f.startswith(".tree-")] == []
