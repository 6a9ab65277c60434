import json
from pathlib import Path
from typing import Optional

from distributor.env import REPORTS_DIR
from distributor.models import Config, InputConfig

CONF_FILE = "season-conf.json"


def create_conf(path: str, reports_dir: Optional[str] = None) -> Config:
    """Generates the base config object from user input"""
    with open(path) as f:
        base_config = InputConfig.model_validate(json.load(f))

    return Config(
        reports_dir=reports_dir or REPORTS_DIR,
        **base_config.model_dump(),
    )


def load_conf(season_path: str) -> Config:
    """Loads an existing config from a season folder"""
    with open(f"{season_path}/{CONF_FILE}") as f:
        return Config.model_validate(json.load(f))


def main(path_to_config_file: Optional[str] = None, reports_dir: Optional[str] = None) -> str:
    """Generates config file and saves in newly created directory with correct structure"""
    if not path_to_config_file:
        path_to_config_file = input(" Path to the config file ")
    conf = create_conf(path_to_config_file, reports_dir)

    # create directories
    Path(conf.path).mkdir(parents=True, exist_ok=True)
    Path(f"{conf.path}/csv/").mkdir(parents=True, exist_ok=True)
    Path(f"{conf.path}/json/").mkdir(parents=True, exist_ok=True)

    # write new config file
    with open(f"{conf.path}/{CONF_FILE}", "w+") as j:
        j.write(json.dumps(conf.model_dump(mode="json"), indent=4))

    print(f"😃 Created a new season folder {conf.path}")

    return conf.path
