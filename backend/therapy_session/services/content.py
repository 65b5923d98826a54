"""Simulated content generation service.

Stands in for an LLM call: an async request that resolves after a delay with
deterministic, theme-aware text. The engine never waits on it; hosts await
it and hand the result to activity modules.
"""

import asyncio

from therapy_session.core.config import get_settings
from therapy_session.core.logging import get_logger
from therapy_session.models.session import ActivityKind, SessionTheme

logger = get_logger(__name__)


class ContentGenerationError(Exception):
    """Raised when the simulated provider rejects a request."""


CONTENT_LIBRARY: dict[str, dict[SessionTheme, str]] = {
    "story": {
        SessionTheme.DRAGON: (
            "The pink dragon named Sparkle likes to fly. She finds a shiny gem in the cave. "
            "The gem makes her happy. Sparkle shows the gem to her friends. "
            "They all play together with the gem."
        ),
        SessionTheme.DINOSAUR: (
            "Rex the green dinosaur walks in the forest. He sees a big tree with fruit. "
            "Rex is hungry and eats the fruit. The fruit is sweet and good. "
            "Rex feels happy after eating."
        ),
    },
    "character": {
        SessionTheme.DRAGON: (
            "Lily is a purple dragon with sparkly wings. She has a white star on her head. "
            "Lily likes to sing songs to flowers. Her special power is making flowers grow big."
        ),
        SessionTheme.DINOSAUR: (
            "Stompy is a blue dinosaur with spiky plates. He has big friendly eyes. "
            "Stompy likes to jump in puddles. His special skill is finding hidden treasures."
        ),
    },
    "activity": {
        SessionTheme.DRAGON: (
            'Dragon Sound Game: Say "roar" like a dragon. Say "whoosh" like flying wings. '
            'Say "crackle" like dragon fire. Say "stomp" like dragon feet. '
            'Say "snore" like a sleeping dragon.'
        ),
        SessionTheme.DINOSAUR: (
            "Dino Movement Game: Stomp like a big dinosaur. Stretch your neck up high. "
            "Swing your tail side to side. Chomp your arms like dino jaws. "
            "Curl up like a dino egg."
        ),
    },
}

CREATURES = {
    SessionTheme.DRAGON: "dragon",
    SessionTheme.DINOSAUR: "dinosaur",
}

PROMPT_TEMPLATES = {
    ActivityKind.SPEECH: "Write a short {creature} story that practices {targets}.",
    ActivityKind.MOVEMENT: "Suggest a {creature} movement activity that practices {targets}.",
    ActivityKind.EXPERT: "Describe a {creature} character the child can be an expert on, using {targets}.",
    ActivityKind.BREAK: "Write a calm {creature} story for a quiet break.",
    ActivityKind.REWARD: "Write a {creature} story celebrating the treasures earned today.",
    ActivityKind.OTHER: "Write a short {creature} story that practices {targets}.",
}


def build_prompt(
    kind: ActivityKind,
    targets: list[str] | None = None,
    interests: list[str] | None = None,
    theme: SessionTheme = SessionTheme.DRAGON,
) -> str:
    """
    Build a generation prompt for an activity.

    @param kind - Activity kind the content is for
    @param targets - Speech targets to practise
    @param interests - Child interests to weave in
    @param theme - Session theme
    @returns Prompt text
    """
    targets_text = ", ".join(targets) if targets else "clear speech"
    prompt = PROMPT_TEMPLATES[kind].format(creature=CREATURES[theme], targets=targets_text)
    if interests:
        prompt += f" Include {', '.join(interests)}."
    return prompt


def _default_content(theme: SessionTheme) -> str:
    creature = CREATURES[theme]
    return (
        f"Once upon a time, there was a friendly {creature}. They loved to play and have fun. "
        "Every day they would go on adventures. They made many friends along the way. "
        "They lived happily ever after."
    )


class ContentGenerator:
    """Deterministic stand-in for an LLM content provider."""

    def __init__(
        self,
        api_key: str | None = None,
        latency_seconds: float | None = None,
        require_api_key: bool | None = None,
    ):
        settings = get_settings()
        self.api_key = settings.content_api_key if api_key is None else api_key
        self.latency_seconds = (
            settings.content_latency_seconds if latency_seconds is None else latency_seconds
        )
        self.require_api_key = (
            settings.require_content_api_key if require_api_key is None else require_api_key
        )

    @property
    def api_key_valid(self) -> bool:
        return self.api_key.startswith("sk-") and len(self.api_key) > 20

    @property
    def masked_api_key(self) -> str:
        if not self.api_key:
            return ""
        return f"{self.api_key[:5]}...{self.api_key[-4:]}"

    async def generate(self, prompt: str, theme: SessionTheme = SessionTheme.DRAGON) -> str:
        """
        Generate content for a prompt.

        @param prompt - Prompt text, matched on the words story/character/activity
        @param theme - Session theme
        @returns Generated text
        @raises ContentGenerationError - When a valid API key is required and missing
        """
        if not prompt.strip():
            raise ContentGenerationError("Prompt is empty")
        if self.require_api_key and not self.api_key_valid:
            raise ContentGenerationError("Invalid API key")

        logger.debug("Generating content for prompt: %s", prompt)
        await asyncio.sleep(self.latency_seconds)

        lowered = prompt.lower()
        for keyword, by_theme in CONTENT_LIBRARY.items():
            if keyword in lowered:
                return by_theme[theme]
        return _default_content(theme)

    def generate_task(self, prompt: str, theme: SessionTheme = SessionTheme.DRAGON) -> asyncio.Task:
        """Schedule generation on the running loop and return the pending task."""
        return asyncio.get_running_loop().create_task(self.generate(prompt, theme))
