import pytest
from environments import ChainEnvironment
from qlab.environment.lab import SimulatedLab
from qlab.model.store import QTableStore
from qlab.trainer.q_learning import TrainerQLearning


@pytest.fixture
def store():
    return QTableStore()


@pytest.fixture
def chain():
    return ChainEnvironment()


@pytest.fixture
def lab():
    return SimulatedLab(sunshine=2)


@pytest.fixture
def chain_trainer(chain, store):
    return TrainerQLearning(chain, store, model_name="chain", tensorboard_path=None)
