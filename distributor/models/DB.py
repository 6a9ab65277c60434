import os
from typing import Any, Optional

from tinydb import TinyDB, where

from distributor.env import LEDGER_DB_PATH
from distributor.errors import MissingDBException
from distributor.models.Season import LedgerEvent, LedgerSettings, Season


class LedgerDB(TinyDB):
    """
    JSON file store for ledger state, one table per concern:
    `settings` (single document), `seasons`, `balances` and `events`.
    Every save replaces the previous state wholesale.
    """

    path: str

    def __init__(self, path: str = LEDGER_DB_PATH, drop=False, **kwargs):
        self.path = path
        super().__init__(path, indent=4, create_dirs=True, **kwargs)

        if drop:
            self.drop_tables()

    @staticmethod
    def exists(path: str) -> bool:
        return os.path.exists(path)

    def write_state(
        self,
        address: str,
        settings: LedgerSettings,
        seasons: list[Season],
        events: list[LedgerEvent],
        balances: list[dict[str, Any]],
    ) -> None:
        self.drop_tables()
        self.table("settings").insert(
            {"address": address, **settings.model_dump(mode="json")}
        )
        self.table("seasons").insert_multiple(
            [s.model_dump(mode="json") for s in seasons]
        )
        self.table("events").insert_multiple([e.model_dump(mode="json") for e in events])
        self.table("balances").insert_multiple(balances)

    def read_settings(self) -> tuple[str, LedgerSettings]:
        docs = self.table("settings").all()
        if not docs:
            raise MissingDBException(f"No ledger state found in {self.path}")
        doc = dict(docs[0])
        address = doc.pop("address")
        return address, LedgerSettings.model_validate(doc)

    def read_seasons(self) -> list[Season]:
        return [Season.model_validate(dict(d)) for d in self.table("seasons").all()]

    def read_events(self) -> list[LedgerEvent]:
        return [LedgerEvent.model_validate(dict(d)) for d in self.table("events").all()]

    def read_balances(self) -> list[dict[str, Any]]:
        return [dict(d) for d in self.table("balances").all()]

    def season(self, season_id: int) -> Optional[Season]:
        doc = self.table("seasons").get(where("id") == season_id)
        return Season.model_validate(dict(doc)) if doc else None
