import argparse
import logging
from pathlib import Path

from agents.random_agent import RandomEventAgent, play_random_game
from automaton.interpreter import RuleInterpreter
from automaton.observer import LoggingObserver
from core.logging_config import setup_logging
from rules.loader import load_rule_definition

DEFAULT_RULES = Path(__file__).resolve().parents[1] / "data" / "chess_rules.json"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Drive a rule automaton with random events.")
    parser.add_argument("--rules", type=Path, default=DEFAULT_RULES, help="Rule definition JSON file")
    parser.add_argument("--seed", type=int, default=42, help="Seed for the random agent")
    parser.add_argument("--steps", type=int, default=25, help="Maximum number of events to send")
    parser.add_argument("--log-level", default="INFO", help="Logging level name")
    return parser.parse_args()


def main():
    args = parse_args()
    logger = setup_logging(getattr(logging, args.log_level.upper(), logging.INFO))
    definition = load_rule_definition(args.rules)
    interpreter = RuleInterpreter(definition, observer=LoggingObserver())
    agent = RandomEventAgent(seed=args.seed)

    results = play_random_game(interpreter, agent, max_steps=args.steps)
    snapshot = interpreter.snapshot()
    logger.info(
        "Finished after %d events: state=%s turn=%s tokens=%s digest=%s",
        len(results),
        snapshot.state,
        snapshot.turn,
        snapshot.ledger,
        snapshot.digest()[:12],
    )

if __name__ == "__main__":
    main()
