from __future__ import annotations

from statemachine import State, StateMachine

from void_archive.api.models import GameState


class ActFSM(StateMachine):
    """Act progression around GameState.

    act 1 -> act 2 -> act 3. The FSM only knows the shape; the service layer
    checks the story conditions (all seals broken) before advancing into act 3.
    """

    act_1 = State("Act 1", value=1, initial=True)
    act_2 = State("Act 2", value=2)
    act_3 = State("Act 3", value=3, final=True)

    open_archive = act_1.to(act_2)
    breach_containment = act_2.to(act_3)

    def __init__(self, game: GameState):
        self.game = game
        super().__init__(start_value=game.act)

    def sync_act_to_model(self) -> None:
        self.game.act = int(self.current_state.value)
