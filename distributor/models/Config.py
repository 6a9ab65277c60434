from __future__ import annotations

from pydantic import BaseModel, field_validator

from distributor.env import REPORTS_DIR
from distributor.errors import BadConfigException
from distributor.models.ERC20 import RegisteredToken


class ERROR_MESSAGES:
    DUPLICATE_TOKEN_ID = "Passed Duplicate Token Ids"
    NO_TOKENS = "Token registry is empty"


class InputConfig(BaseModel):
    """
    Season config as written by an operator.
    :param `tokens`: the token registry, maps token ids in the quest data to on-chain tokens
    :param `events_path`: export of quest completions from the quest-progress store
    """

    season_id: int
    events_path: str
    tokens: list[RegisteredToken]

    @field_validator("season_id")
    @classmethod
    def validate_season(cls, season_id: int) -> int:
        if season_id < 1:
            raise BadConfigException("Season id must be positive")
        return season_id

    @field_validator("tokens")
    @classmethod
    def validate_tokens(cls, tokens: list[RegisteredToken]) -> list[RegisteredToken]:
        if not tokens:
            raise BadConfigException(ERROR_MESSAGES.NO_TOKENS)
        ids = [t.id for t in tokens]
        if len(ids) != len(set(ids)):
            raise BadConfigException(ERROR_MESSAGES.DUPLICATE_TOKEN_ID)
        return tokens


class Config(InputConfig):
    """Full config, adds where the season reports are written"""

    reports_dir: str = REPORTS_DIR

    @property
    def label(self) -> str:
        return f"season-{self.season_id}"

    @property
    def path(self) -> str:
        return f"{self.reports_dir}/{self.label}"
