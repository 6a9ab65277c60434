import json
import logging
from collections import defaultdict
from typing import Any, Iterable

from pydantic import TypeAdapter

from distributor.errors import UnknownTokenError
from distributor.models import RegisteredToken, RewardEvent, RewardFact

logger = logging.getLogger(__name__)


class TokenRegistry:
    """Resolves the internal token ids used by the quest data into on-chain tokens"""

    def __init__(self, tokens: Iterable[RegisteredToken]):
        self._tokens = {t.id: t for t in tokens}

    def resolve(self, token_id: int) -> RegisteredToken:
        try:
            return self._tokens[token_id]
        except KeyError:
            raise UnknownTokenError(f"No token registered for id {token_id}")


def flatten_user_documents(documents: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    The quest-progress store keeps one document per user with a list of `tokenRewards`.
    Unroll those into one raw event per reward.
    """
    events = []
    for doc in documents:
        rewards = doc.get("tokenRewards")
        if not isinstance(rewards, list):
            logger.warning("User %s has invalid tokenRewards data, skipping", doc.get("address"))
            continue
        # missing reward fields are reported by event validation
        events.extend({**r, "address": doc.get("address")} for r in rewards)
    return events


def load_events(path: str) -> list[RewardEvent]:
    """
    Loads raw quest completion events from a JSON export. Accepts either a flat list of events
    or the user document shape `[{"address": ..., "tokenRewards": [...]}]`.
    """
    with open(path) as f:
        raw = json.load(f)

    # user documents carry tokenRewards, never a top level tokenId
    if raw and not any("tokenId" in doc for doc in raw):
        raw = flatten_user_documents(raw)

    events = TypeAdapter(list[RewardEvent]).validate_python(raw)
    logger.info("Loaded %d reward events from %s", len(events), path)
    return events


def filter_season(events: Iterable[RewardEvent], season_id: int) -> list[RewardEvent]:
    """Return all events for a single season"""
    return [e for e in events if e.seasonId == season_id]


def aggregate(events: Iterable[RewardEvent], registry: TokenRegistry) -> list[RewardFact]:
    """
    Collapse raw events into one fact per (address, season, token).

    Points are summed, then converted from whole points into the token's base units using the
    registry decimals: everything downstream of here deals in base units only.
    Facts with zero points are dropped, there is nothing to claim. The result is sorted so the
    same events give the same facts in any input order.
    """
    totals: dict[tuple[int, str, str], int] = defaultdict(int)
    for event in events:
        token = registry.resolve(event.tokenId)
        totals[(event.seasonId, event.address, token.address)] += event.points * token.unit

    facts = [
        RewardFact(address=address, seasonId=season_id, token=token, points=points)
        for (season_id, address, token), points in sorted(totals.items())
        if points > 0
    ]
    logger.debug("Aggregated %d facts", len(facts))
    return facts
