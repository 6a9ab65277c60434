import os
from typing import Optional

from dotenv import load_dotenv
from distributor.errors import MissingEnvironmentVariableException

load_dotenv()


def env_var(accessor: str, default: Optional[str] = None) -> str:
    """
    Attempt to fetch an environment variable and throw
    an error if not found and no default is given
    """
    var = os.environ.get(accessor, default)
    if not var:
        raise MissingEnvironmentVariableException(accessor)
    return var


REPORTS_DIR = env_var("REPORTS_DIR", "reports")
LEDGER_DB_PATH = env_var("LEDGER_DB_PATH", f"{REPORTS_DIR}/ledger-db.json")
LOG_LEVEL = env_var("LOG_LEVEL", "INFO")
