"""
Policy queries on trained Q-tables.

`PolicyController` answers "what should be done next" for a goal and an
observed state description, reading the goal's table from the shared
`QTableStore`. The returned `ActionRecommendation` carries everything needed to
invoke the action on the real environment: its semantic tag, the tags of its
payload slots and the payload values.

Only the actions applicable in the observed state are scanned; the first maximum
(lowest action index) wins, the same tie-break the trainer uses.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from qlab.controller import BaseController
from qlab.environment import LearningEnvironment
from qlab.environment.goal import Goal, as_goal
from qlab.exceptions import NoPolicyForGoal
from qlab.model.q_table import ModelQTable
from qlab.model.store import QTableStore
from qlab.utils.logger import logger


@dataclass(frozen=True)
class ActionRecommendation:
    """
    Next best action of a policy.

    Attributes:
        action_tag (str): Semantic annotation of the action,
            e.g. ``"http://example.org/was#SetZ1Light"``.
        payload_tags (tuple[str, ...]): Semantic annotations of the payload, e.g. ``("Z1Light",)``.
        payload (tuple[Any, ...]): Payload values, e.g. ``(True,)``.
        action_index (int): Index of the action in the action space.
    """

    action_tag: str
    payload_tags: tuple[str, ...]
    payload: tuple[Any, ...]
    action_index: int

    def to_dict(self) -> dict:
        return {
            "actionTag": self.action_tag,
            "payloadTags": list(self.payload_tags),
            "payload": list(self.payload),
        }


class PolicyController(BaseController):
    """Greedy controller backed by the Q-tables of a store.

    Attributes:
        store (QTableStore): Source of trained tables; never written.
    """

    store: QTableStore

    def __init__(self, environment: LearningEnvironment, store: QTableStore):
        super().__init__(environment)
        self.store = store

    def table_for(self, goal: Goal | Iterable[Any]) -> ModelQTable:
        """
        Trained table of a goal.

        Raises:
            NoPolicyForGoal: If no table was stored for the goal.
        """
        goal = as_goal(goal)
        model = self.store.get(goal.key())
        if model is None:
            raise NoPolicyForGoal(f"No Q-table trained for goal {goal}.")
        return model

    def policy(self, goal: Goal, state_index: int) -> int:
        return self.table_for(goal).best_action(state_index, self.environment.applicable_actions(state_index))

    def best_action(self, goal: Goal | Iterable[Any], current_state_description: Sequence[Any]) -> ActionRecommendation:
        """
        Next best action for a goal from a described state.

        Args:
            goal: Goal or raw goal description, e.g. ``[2, 3]``.
            current_state_description: Raw state, e.g.
                ``[2, 2, True, False, True, True, 2]``.

        Raises:
            NoPolicyForGoal: If no table was trained for ``goal``.
            UnknownState: If the description is not part of the state space.
        """
        goal = as_goal(goal)
        model = self.table_for(goal)
        state_index = self.environment.state_index_of(current_state_description)
        action_index = model.best_action(state_index, self.environment.applicable_actions(state_index))
        action = self.environment.action_at(action_index)
        logger().debug(f"Best action for goal {goal} in state {state_index}: {action_index} ({action.tag})")
        return ActionRecommendation(
            action_tag=action.tag,
            payload_tags=action.payload_tags,
            payload=action.payload,
            action_index=action_index,
        )
