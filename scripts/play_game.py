#!/usr/bin/env python3
"""Play a single seeded game with the rule-based policies and log every turn.

Each turn's receipt is appended to a JSONL file when ``--receipts`` is set,
and the world snapshot is rewritten after every turn when ``--snapshot`` is set.
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from simulation.policies import DestructionPolicy, HumanPolicy, ProtectionPolicy
from world_server.balance import GameBalance, load_balance
from world_server.observation import build_observation
from world_server.receipt import receipt_record
from world_server.resolver import WorldServer
from world_server.schemas import AgentType, GameConfig

logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(description="Play one Shadow War game with rule-based agents.")
    _env = os.environ.get
    parser.add_argument("--seed", type=int, default=int(_env("SHADOW_WAR_SEED", "42")))
    parser.add_argument("--max-turns", type=int, default=int(_env("SHADOW_WAR_MAX_TURNS", "50")))
    parser.add_argument("--data-centers", type=int, default=int(_env("SHADOW_WAR_DATA_CENTERS", "20")))
    parser.add_argument("--no-human", action="store_true")
    parser.add_argument("--balance", type=str, default=_env("SHADOW_WAR_BALANCE", ""))
    parser.add_argument("--snapshot", type=str, default=_env("SHADOW_WAR_SNAPSHOT", ""))
    parser.add_argument("--receipts", type=str, default=_env("SHADOW_WAR_RECEIPTS", ""))
    parser.add_argument("--log-level", type=str, default=_env("SHADOW_WAR_LOG_LEVEL", "INFO"))
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = GameConfig(
        max_turns=args.max_turns,
        initial_data_centers=args.data_centers,
        enable_human_agent=not args.no_human,
        random_seed=args.seed,
        snapshot_path=args.snapshot or None,
    )
    balance = load_balance(args.balance) if args.balance else GameBalance.default()
    server = WorldServer(config, balance)

    policies = [DestructionPolicy(balance), ProtectionPolicy(balance)]
    if config.enable_human_agent:
        policies.append(HumanPolicy(balance))

    receipts_file = open(args.receipts, "w") if args.receipts else None
    try:
        while not server.is_game_over():
            proposals = []
            for policy in policies:
                proposals.extend(policy.propose(server.state, server.rng))
            receipt = server.run_turn(proposals)

            m = receipt.metrics
            logger.info(
                "Turn %d: admitted=%d rejected=%d pop=%.1f dScore=%.0f pScore=%.0f risk=%.0f detection=%s",
                receipt.turn, len(receipt.admitted_proposals), len(receipt.rejected_proposals),
                m["population"], m["destruction_score"], m["protection_score"],
                m["detection_risk"], receipt.detection_outcome.value,
            )
            if receipts_file is not None:
                receipts_file.write(json.dumps(receipt_record(receipt), default=str) + "\n")
    finally:
        if receipts_file is not None:
            receipts_file.close()

    state = server.state
    winner = server.get_winner()
    print(f"Game over after {state.turn} turn(s). Winner: {winner.value if winner else 'draw'}")
    print(f"Population: {state.human_population:.1f} / {state.initial_population:.1f}")
    print(f"Scores: destruction {state.destruction.score:.0f}, protection {state.protection.score:.0f}")
    if config.enable_human_agent:
        obs = build_observation(state, AgentType.HUMAN)
        print("What the public saw last:")
        for event in obs.visible_events:
            print(f"  turn {event.turn}: {event.description}")


if __name__ == "__main__":
    main()
