"""Movement drill pairing target words with actions."""

from dataclasses import dataclass

from therapy_session.activities.base import METER_MAX, ActivityCallbacks, ActivityModule


@dataclass(frozen=True)
class MovementAction:
    id: str
    name: str
    instruction: str
    target_word: str


KNOWN_ACTIONS = {
    "jump": ("Jump", "Jump like a dragon!"),
    "spin": ("Spin", "Spin like a dragon!"),
    "stomp": ("Stomp", "Stomp like a dragon!"),
    "fly": ("Fly", "Flap your wings like a dragon!"),
    "roar": ("Roar", "Roar like a dragon!"),
}

DEFAULT_WORDS = ["Jump", "Spin", "Stomp"]


def build_actions(words: list[str]) -> list[MovementAction]:
    """Map target words to actions, falling back to jump/spin/stomp."""
    if not words:
        return [
            MovementAction(f"{word.lower()}-default", *KNOWN_ACTIONS[word.lower()], target_word=word)
            for word in DEFAULT_WORDS
        ]

    actions = []
    for index, word in enumerate(words):
        known = KNOWN_ACTIONS.get(word.lower())
        if known:
            actions.append(MovementAction(f"{word.lower()}-{index}", *known, target_word=word))
        else:
            actions.append(
                MovementAction(f"action-{index}", word, f'Say "{word}" while moving!', target_word=word)
            )
    return actions


class MovementDrill(ActivityModule):
    """Perform each action while saying its word."""

    name = "movement drill"

    def __init__(self, words: list[str] | None = None, callbacks: ActivityCallbacks | None = None):
        super().__init__(callbacks)
        self.actions = build_actions(words or [])
        self.action_index = 0

    @property
    def current_action(self) -> MovementAction:
        return self.actions[self.action_index]

    def complete_action(self, success: bool) -> None:
        """Score the current action; every action performed is an attempt."""
        self._require_active("complete action")
        self._attempt()
        self._judge(success)
        if success:
            self._raise_meter(METER_MAX / len(self.actions))

    def next_action(self) -> bool:
        self._require_active("next action")
        if self.action_index < len(self.actions) - 1:
            self.action_index += 1
            return True
        self.finish()
        return False
