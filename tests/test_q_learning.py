import os
import threading

import numpy as np
import pytest
from environments import (
    JUMP,
    STEP,
    ChainEnvironment,
    FlakyEnvironment,
    ForkEnvironment,
    MaskedEnvironment,
    StuckEnvironment,
)
from qlab.config import TrainingConfig
from qlab.controller.policy import PolicyController
from qlab.environment.goal import Goal, goal_key
from qlab.environment.lab import SimulatedLab
from qlab.exceptions import (
    ActuationFailed,
    EpisodeStepLimitExceeded,
    InvalidParameter,
    SensorUnavailable,
    TrainingCancelled,
)
from qlab.model.store import QTableStore
from qlab.trainer.q_learning import TrainerQLearning
from qlab.trainer.reward import ClippedInverseReward, DistanceReward, TerminalReward, reward_function_for

GOAL = [2]


@pytest.mark.parametrize(
    "alpha, gamma, epsilon",
    [(0.0, 0.0, 1.0), (1.0, 1.0, 0.0), (1.0, 0.0, 0.5), (0.5, 0.9, 0.1), (0.3, 1.0, 1.0)],
)
def test_train_produces_finite_table_of_environment_shape(chain_trainer, chain, alpha, gamma, epsilon):
    model = chain_trainer.train(GOAL, episodes=50, alpha=alpha, gamma=gamma, epsilon=epsilon, seed=11)
    assert model.shape == (chain.state_count(), chain.action_count())
    assert np.isfinite(model.q_table).all()


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_zero_learning_rate_leaves_table_untouched(chain_trainer, seed):
    model = chain_trainer.train(GOAL, episodes=40, alpha=0.0, gamma=0.9, epsilon=1.0, seed=seed)
    assert not model.q_table.any()


def test_converges_to_goal_reaching_action(chain_trainer, chain, store):
    model = chain_trainer.train(
        GOAL,
        episodes=300,
        alpha=0.5,
        gamma=0.9,
        epsilon=0.1,
        reward=10.0,
        reward_mode="terminal",
        step_penalty=-1.0,
        seed=3,
    )
    controller = PolicyController(chain, store)
    for state in (0, 1):
        assert model.q_table[state][JUMP] > model.q_table[state][STEP]
        assert controller.best_action(GOAL, (state,)).action_tag == "urn:jump"


def test_dense_reward_learns_without_exploration(chain_trainer):
    model = chain_trainer.train(GOAL, episodes=20, alpha=1.0, gamma=0.9, epsilon=0.0, seed=5)
    assert model.best_action(0) == JUMP
    assert model.best_action(1) == JUMP


def test_trained_table_is_stored_under_canonical_goal_key(chain_trainer, store):
    model = chain_trainer.train((np.int8(2),), episodes=5, alpha=0.5, gamma=0.9, epsilon=0.5, seed=1)
    assert store.get(goal_key(["2"])) is model
    assert store.get(goal_key([2.0])) is model
    assert chain_trainer.model is model
    assert not model.q_table.flags.writeable


def test_retraining_replaces_previous_table(store):
    environment = ForkEnvironment()
    goal = Goal.of([1], features=[0])
    controller = PolicyController(environment, store)

    prefer_right = TrainerQLearning(
        environment, store, reward_function=lambda state, goal, terminated: float(state[1]), tensorboard_path=None
    )
    prefer_right.train(goal, episodes=20, alpha=0.5, gamma=0.9, epsilon=1.0, seed=0)
    assert controller.best_action(goal, (0, 0)).action_tag == "urn:right"

    prefer_left = TrainerQLearning(
        environment, store, reward_function=lambda state, goal, terminated: 1.0 - state[1], tensorboard_path=None
    )
    second = prefer_left.train(goal, episodes=20, alpha=0.5, gamma=0.9, epsilon=1.0, seed=0)
    assert store.get(goal.key()) is second
    assert second.q_table[0][1] == 0.0
    assert controller.best_action(goal, (0, 0)).action_tag == "urn:left"


@pytest.mark.parametrize(
    "overrides",
    [
        {"episodes": 0},
        {"episodes": -3},
        {"episodes": 2.5},
        {"episodes": True},
        {"alpha": 1.5},
        {"alpha": -0.1},
        {"gamma": 1.01},
        {"epsilon": 2},
        {"epsilon": "0.1"},
        {"reward": float("nan")},
        {"reward_mode": "sparse"},
        {"max_steps": 0},
        {"epsilon_decay": 1.5},
        {"seed": 1.5},
    ],
)
def test_invalid_parameters_are_rejected_before_training(chain_trainer, chain, store, overrides):
    parameters = {"episodes": 10, "alpha": 0.5, "gamma": 0.9, "epsilon": 0.1}
    parameters.update(overrides)
    with pytest.raises(InvalidParameter):
        chain_trainer.train(GOAL, **parameters)
    assert chain.performed == []
    assert len(store) == 0


def test_training_config_normalizes_numbers():
    config = TrainingConfig(episodes=np.int64(3), alpha=1, gamma=np.float32(0.5), epsilon=0)
    assert config.episodes == 3 and type(config.episodes) is int
    assert config.alpha == 1.0 and type(config.alpha) is float
    assert config.gamma == 0.5
    assert config.reward_mode == "dense"


def test_unknown_training_option_is_rejected(chain_trainer, chain, store):
    with pytest.raises(InvalidParameter, match="epsilon_decy"):
        chain_trainer.train(GOAL, episodes=10, alpha=0.5, gamma=0.9, epsilon=0.1, epsilon_decy=0.9)
    assert chain.performed == []
    assert len(store) == 0


def test_state_without_applicable_action_is_rejected(store):
    environment = StuckEnvironment()
    trainer = TrainerQLearning(environment, store, tensorboard_path=None)
    for epsilon in (0.0, 1.0):
        with pytest.raises(InvalidParameter):
            trainer.train(GOAL, episodes=3, alpha=0.5, gamma=0.9, epsilon=epsilon, seed=0)
    assert environment.performed == []
    assert len(store) == 0


def test_goal_without_compatible_state_is_rejected(chain_trainer, chain):
    with pytest.raises(InvalidParameter):
        chain_trainer.train([5], episodes=5, alpha=0.5, gamma=0.9, epsilon=0.1)
    assert chain.performed == []


def test_goal_beyond_state_width_is_rejected(chain_trainer):
    with pytest.raises(InvalidParameter):
        chain_trainer.train([2, 2], episodes=5, alpha=0.5, gamma=0.9, epsilon=0.1)


def test_step_limit_exceeded_keeps_previous_table(chain_trainer, store):
    previous = chain_trainer.train(GOAL, episodes=5, alpha=0.5, gamma=0.9, epsilon=0.5, seed=2)
    # greedy on an all-zero table that alpha=0 never updates keeps stepping between states 0 and 1
    with pytest.raises(EpisodeStepLimitExceeded) as error:
        chain_trainer.train(GOAL, episodes=5, alpha=0.0, gamma=0.9, epsilon=0.0, max_steps=25)
    assert error.value.max_steps == 25
    assert error.value.episode == 0
    assert store.get(goal_key(GOAL)) is previous


def test_terminal_reward_without_exploration_hits_step_limit(chain_trainer, store):
    with pytest.raises(EpisodeStepLimitExceeded):
        chain_trainer.train(
            GOAL, episodes=3, alpha=0.5, gamma=0.9, epsilon=0.0, reward=1.0, reward_mode="terminal", max_steps=50
        )
    assert len(store) == 0


def test_actuation_failure_aborts_and_keeps_previous_table(store):
    healthy = TrainerQLearning(ChainEnvironment(), store, tensorboard_path=None)
    previous = healthy.train(GOAL, episodes=5, alpha=0.5, gamma=0.9, epsilon=0.2, seed=4)
    snapshot = previous.q_table.copy()

    flaky = TrainerQLearning(FlakyEnvironment(fail_action_after=7), store, tensorboard_path=None)
    with pytest.raises(ActuationFailed):
        flaky.train(GOAL, episodes=50, alpha=0.5, gamma=0.9, epsilon=1.0, seed=4)
    assert store.get(goal_key(GOAL)) is previous
    np.testing.assert_array_equal(previous.q_table, snapshot)
    assert flaky.model is None


def test_sensor_failure_aborts_without_publishing(store):
    trainer = TrainerQLearning(FlakyEnvironment(fail_sensor_after=3), store, tensorboard_path=None)
    with pytest.raises(SensorUnavailable):
        trainer.train(GOAL, episodes=50, alpha=0.5, gamma=0.9, epsilon=1.0, seed=4)
    assert len(store) == 0


def test_cancellation_aborts_training(chain_trainer, store):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(TrainingCancelled):
        chain_trainer.train(GOAL, episodes=10, alpha=0.5, gamma=0.9, epsilon=0.1, cancel_event=cancel)
    assert len(store) == 0


def test_inapplicable_actions_are_never_taken_or_updated(store):
    environment = MaskedEnvironment()
    trainer = TrainerQLearning(environment, store, tensorboard_path=None)
    model = trainer.train(GOAL, episodes=60, alpha=0.5, gamma=0.9, epsilon=0.5, seed=8)
    assert (0, JUMP) not in environment.performed
    assert model.q_table[0][JUMP] == 0.0
    assert model.best_action(1, environment.applicable_actions(1)) == JUMP


def test_epsilon_decays_down_to_minimum(chain_trainer):
    chain_trainer.train(
        GOAL, episodes=10, alpha=0.5, gamma=0.9, epsilon=1.0, epsilon_decay=0.5, epsilon_min=0.05, seed=0
    )
    assert chain_trainer.epsilon == pytest.approx(0.05)


def test_seeded_training_is_reproducible():
    tables = []
    for _ in range(2):
        trainer = TrainerQLearning(ChainEnvironment(), QTableStore(), tensorboard_path=None)
        tables.append(trainer.train(GOAL, episodes=30, alpha=0.4, gamma=0.8, epsilon=0.3, seed=21).q_table)
    np.testing.assert_array_equal(tables[0], tables[1])


def test_parallel_training_of_distinct_goals(store):
    goals = [[2, 2], [3, 0], [0, 3]]

    def train(goal):
        trainer = TrainerQLearning(SimulatedLab(sunshine=2), store, tensorboard_path=None)
        trainer.train(goal, episodes=30, alpha=0.5, gamma=0.9, epsilon=0.2, seed=1)

    threads = [threading.Thread(target=train, args=(goal,)) for goal in goals]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert sorted(store.keys()) == sorted(goal_key(goal) for goal in goals)


def test_tensorboard_events_are_written(chain, store, tmp_path):
    trainer = TrainerQLearning(chain, store, model_name="tb", tensorboard_path=str(tmp_path))
    trainer.train(GOAL, episodes=5, alpha=0.5, gamma=0.9, epsilon=0.3, seed=0)
    assert trainer.tb_writer is None
    event_files = [name for _, _, files in os.walk(tmp_path) for name in files if "tfevents" in name]
    assert event_files


def test_save_model(chain_trainer, tmp_path):
    with pytest.raises(RuntimeError):
        chain_trainer.save_model(str(tmp_path))
    chain_trainer.train(GOAL, episodes=5, alpha=0.5, gamma=0.9, epsilon=0.3, seed=0)
    path = chain_trainer.save_model(str(tmp_path))
    assert os.path.exists(path)
    assert os.path.basename(path).startswith("chain_")


def test_reward_functions():
    goal = Goal.of([2, 3])
    assert DistanceReward()((2, 3), goal, True) == 0.0
    assert DistanceReward()((0, 3), goal, False) == -2.0
    assert ClippedInverseReward()((2, 3), goal, True) == 1.0
    assert ClippedInverseReward(scale=4.0)((1, 2), goal, False) == pytest.approx(4.0 / 3.0)
    assert TerminalReward(10.0)((2, 3), goal, True) == 10.0
    assert TerminalReward(10.0, step_penalty=-0.5)((0, 0), goal, False) == -0.5


def test_reward_function_follows_reward_mode():
    assert isinstance(reward_function_for(TrainingConfig(1, 0.5, 0.5, 0.5)), DistanceReward)
    terminal = reward_function_for(TrainingConfig(1, 0.5, 0.5, 0.5, reward=7, reward_mode="terminal"))
    assert isinstance(terminal, TerminalReward)
    assert terminal.reward == 7.0
