import argparse
import json
import logging
import sys

from qlab.config import DEFAULT_MAX_STEPS, MODEL_PATH, REWARD_MODES, TENSORBOARD_PATH
from qlab.controller.policy import ActionRecommendation, PolicyController
from qlab.environment.lab import SimulatedLab
from qlab.exceptions import QLabError
from qlab.model.store import QTableStore
from qlab.trainer.q_learning import TrainerQLearning
from qlab.utils.logger import logger

STORE_NAME = "lab_q_tables"


def load_store(name: str, model_dir: str) -> QTableStore:
    """
    Load the store archive if it exists, otherwise return an empty store.

    Args:
        name (str): Archive name (without extension).
        model_dir (str): Directory holding the archive.

    Returns:
        QTableStore: Store holding every previously trained goal.
    """
    store = QTableStore()
    try:
        store.load(name, model_dir)
    except FileNotFoundError:
        logger().info(f"No store named {name} in {model_dir}, starting empty.")
    return store


def train(args: argparse.Namespace) -> str:
    """
    Train a Q-table for one goal on the simulated lab and save the store.

    Tables of other goals already saved under the same name are kept.

    Returns:
        str: Path of the saved store archive.
    """
    store = load_store(args.name, args.model_dir)
    lab = SimulatedLab(sunshine=args.sunshine)
    trainer = TrainerQLearning(
        environment=lab,
        store=store,
        model_name=args.name,
        tensorboard_path=None if args.no_tensorboard else args.tensorboard_dir,
    )
    trainer.train(
        args.goal,
        episodes=args.episodes,
        alpha=args.alpha,
        gamma=args.gamma,
        epsilon=args.epsilon,
        reward=args.reward,
        reward_mode=args.reward_mode,
        max_steps=args.max_steps,
        seed=args.seed,
    )
    return store.save(args.name, args.model_dir)


def query(args: argparse.Namespace) -> ActionRecommendation:
    """
    Recommend the next best action for a goal from a described lab state.

    Returns:
        ActionRecommendation: Tag, payload tags and payload of the action.
    """
    store = QTableStore()
    store.load(args.name, args.model_dir)
    controller = PolicyController(SimulatedLab(), store)
    return controller.best_action(args.goal, args.state)


def parse_state_value(value: str) -> int | bool:
    """Accept integers and the booleans ``true``/``false`` in state descriptions."""
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    return int(value)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Train and query goal-specific Q-tables of the simulated lab.")
    parser.add_argument("--name", type=str, default=STORE_NAME, help="Name of the Q-table store archive")
    parser.add_argument("--model-dir", type=str, default=MODEL_PATH, help="Directory of the store archive")
    parser.add_argument("--verbose", action="store_true", help="Debug console logging")
    parser.add_argument("--log-file", action="store_true", help="Also log to a rotating file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    train_parser = subparsers.add_parser("train", help="Train a Q-table for a goal")
    train_parser.add_argument("--goal", type=int, nargs="+", required=True, help="Desired zone levels, e.g. 2 3")
    train_parser.add_argument("--episodes", type=int, default=100, help="Number of episodes")
    train_parser.add_argument("--alpha", type=float, default=0.5, help="Learning rate in [0, 1]")
    train_parser.add_argument("--gamma", type=float, default=0.9, help="Discount factor in [0, 1]")
    train_parser.add_argument("--epsilon", type=float, default=0.1, help="Exploration probability in [0, 1]")
    train_parser.add_argument("--reward", type=float, default=1.0, help="Goal reward of the terminal reward mode")
    train_parser.add_argument("--reward-mode", type=str, choices=REWARD_MODES, default=REWARD_MODES[0])
    train_parser.add_argument("--max-steps", type=int, default=DEFAULT_MAX_STEPS, help="Step ceiling per episode")
    train_parser.add_argument("--sunshine", type=int, default=2, help="Sunshine level of the simulated lab")
    train_parser.add_argument("--seed", type=int, required=False, help="Exploration seed")
    train_parser.add_argument("--tensorboard-dir", type=str, default=TENSORBOARD_PATH, help="TensorBoard root")
    train_parser.add_argument("--no-tensorboard", action="store_true", help="Disable TensorBoard logging")

    query_parser = subparsers.add_parser("query", help="Recommend the next best action")
    query_parser.add_argument("--goal", type=int, nargs="+", required=True, help="Desired zone levels, e.g. 2 3")
    query_parser.add_argument(
        "--state", type=parse_state_value, nargs="+", required=True, help="Current state, e.g. 2 2 true false true true 2"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logger.add_console_logger(logging.DEBUG if args.verbose else logging.INFO)
    if args.log_file:
        logger.add_file_logger(logging.DEBUG)

    try:
        if args.command == "train":
            path = train(args)
            print(json.dumps({"store": path}))
        else:
            recommendation = query(args)
            print(json.dumps(recommendation.to_dict()))
    except (QLabError, FileNotFoundError) as e:
        logger().error(str(e))
        return 1
    finally:
        logger.clear_handlers()
    return 0


if __name__ == "__main__":
    sys.exit(main())
