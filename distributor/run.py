import logging
from collections import defaultdict

from distributor.aggregator import TokenRegistry, aggregate, filter_season, load_events
from distributor.config import load_conf
from distributor.encoder import encode_fact
from distributor.errors import EmptyTreeError, TreeError
from distributor.merkle import MerkleTree, build_tree
from distributor.models import Config, RewardFact, TreeData, UserProofs, Writer
from distributor.utils import to_hex_list

logger = logging.getLogger(__name__)


def build_tree_data(facts: list[RewardFact]) -> tuple[MerkleTree, TreeData]:
    """
    Build the tree for one season's facts and pair every user with their proofs.
    Raises `EmptyTreeError` with no facts: an empty season never gets a root.
    """
    if not facts:
        raise EmptyTreeError("No reward facts, refusing to build an empty tree")

    seasons = {f.seasonId for f in facts}
    if len(seasons) > 1:
        raise TreeError(f"Facts span multiple seasons {sorted(seasons)}, build one tree per season")
    (season_id,) = seasons

    leaves = {f: encode_fact(f) for f in facts}
    tree = build_tree(leaves.values())

    by_user: dict[str, list[RewardFact]] = defaultdict(list)
    for f in facts:
        by_user[f.address].append(f)

    user_proofs = {
        address: UserProofs(
            seasonId=season_id,
            tokens=[f.token for f in user_facts],
            points=[f.points for f in user_facts],
            proofs=[to_hex_list(tree.proof(leaves[f])) for f in user_facts],
        )
        for address, user_facts in sorted(by_user.items())
    }

    tree_data = TreeData(root=tree.hex_root, leaves=tree.hex_leaves, userProofs=user_proofs)
    return tree, tree_data


def generate(config: Config) -> TreeData:
    """Events -> facts -> tree, then write the season snapshot and reports"""
    writer = Writer(config)
    registry = TokenRegistry(config.tokens)

    # fetch the raw quest completions for this season
    events = filter_season(load_events(config.events_path), config.season_id)

    # one fact per user and token, in token base units
    facts = aggregate(events, registry)

    # build the whole tree before anything is written
    tree, tree_data = build_tree_data(facts)

    # reports first, the snapshot is written last
    writer.to_csv_and_json([f.model_dump(mode="json") for f in facts], "rewards")
    path = writer.write_tree_data(tree_data)

    logger.info(
        "Season %d: %d leaves, %d users, root %s",
        config.season_id,
        len(tree),
        len(tree_data.userProofs),
        tree_data.root,
    )
    print(f"🚀🚀🚀 Merkle root for season {config.season_id}: {tree_data.root}")
    print(f"🌳 Tree data written to {path}, check it before publishing the root")
    return tree_data


def run(season_path: str) -> TreeData:
    return generate(load_conf(season_path))
