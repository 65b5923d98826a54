"""Expert role-play: the child explains facts to a curious character."""

from dataclasses import dataclass

from therapy_session.activities.base import METER_MAX, ActivityCallbacks, ActivityModule
from therapy_session.core.errors import ValidationError

# Clarity ratings run 1 (unclear) to 4 (crystal clear); 3 and up counts as success
MIN_CLEAR_LEVEL = 3
MAX_CLARITY = 4


@dataclass(frozen=True)
class TopicFact:
    id: str
    fact: str
    difficulty: int


FACT_BANK: dict[str, list[TopicFact]] = {
    "Dragon Colors": [
        TopicFact("dc1", "Red dragons breathe fire", 1),
        TopicFact("dc2", "Blue dragons control lightning", 2),
        TopicFact("dc3", "Green dragons have poison breath", 3),
        TopicFact("dc4", "Purple dragons have magic powers", 4),
        TopicFact("dc5", "Pink dragons are very rare and special", 2),
    ],
    "Dragon Food": [
        TopicFact("df1", "Dragons eat fish", 1),
        TopicFact("df2", "Dragons like berries", 1),
        TopicFact("df3", "Dragons drink water from lakes", 2),
        TopicFact("df4", "Dragons roast their food with fire", 3),
        TopicFact("df5", "Baby dragons drink milk", 2),
    ],
    "Dragon Homes": [
        TopicFact("dh1", "Dragons live in caves", 1),
        TopicFact("dh2", "Dragons sleep on gold", 2),
        TopicFact("dh3", "Dragons build nests for eggs", 3),
        TopicFact("dh4", "Dragon caves are very warm", 2),
        TopicFact("dh5", "Some dragons live in volcanoes", 4),
    ],
    "Dragon Friends": [
        TopicFact("dfr1", "Dragons can be friends with humans", 1),
        TopicFact("dfr2", "Dragons protect their friends", 2),
        TopicFact("dfr3", "Dragons give rides to their friends", 2),
        TopicFact("dfr4", "Dragons share treasures with friends", 3),
        TopicFact("dfr5", "Dragons teach friends to fly", 4),
    ],
}


class ExpertRolePlay(ActivityModule):
    """Walk through facts on a topic, rating how clearly each is explained."""

    name = "expert role-play"

    def __init__(
        self,
        topics: list[str] | None = None,
        difficulty: int = 1,
        callbacks: ActivityCallbacks | None = None,
    ):
        super().__init__(callbacks)
        # Session targets often name speech sounds rather than topics
        known = [topic for topic in topics or [] if topic in FACT_BANK]
        self.topics = known or list(FACT_BANK)
        self.difficulty = difficulty
        self._bank = {topic: list(facts) for topic, facts in FACT_BANK.items()}
        self.topic = self.topics[0]
        self.facts = self._facts_for(self.topic)
        self.fact_index = 0

    def _facts_for(self, topic: str) -> list[TopicFact]:
        return [fact for fact in self._bank.get(topic, []) if fact.difficulty <= self.difficulty + 2]

    @property
    def current_fact(self) -> TopicFact | None:
        if not self.facts:
            return None
        return self.facts[self.fact_index]

    def change_topic(self, topic: str) -> None:
        """Switch topic and restart its facts. Unknown topics are ignored."""
        self._require_active("change topic")
        if topic not in self.topics:
            return
        self.topic = topic
        self.facts = self._facts_for(topic)
        self.fact_index = 0

    def add_fact(self, text: str) -> TopicFact:
        """Append a fact (for example, generated content) to the current topic."""
        self._require_active("add fact")
        fact = TopicFact(
            id=f"{self.topic.lower().replace(' ', '-')}-{len(self._bank.get(self.topic, [])) + 1}",
            fact=text,
            difficulty=min(self.difficulty, 5),
        )
        self._bank.setdefault(self.topic, []).append(fact)
        self.facts.append(fact)
        return fact

    def rate_clarity(self, level: int) -> bool:
        """
        Rate how clearly the current fact was explained.

        @param level - Clarity from 1 to 4
        @returns Whether the explanation counted as a success
        """
        self._require_active("rate clarity")
        if not 1 <= level <= MAX_CLARITY:
            raise ValidationError("Clarity level must be between 1 and 4", {"level": level})

        self._attempt()
        success = level >= MIN_CLEAR_LEVEL
        self._judge(success)
        if success:
            self._raise_meter(METER_MAX / (max(len(self.facts), 1) * 2))
        return success

    def next_fact(self) -> bool:
        self._require_active("next fact")
        if self.fact_index < len(self.facts) - 1:
            self.fact_index += 1
            return True
        self.finish()
        return False
