"""Prompt and fallback templates for moderator announcements."""

MODERATOR_SYSTEM_PROMPT = (
    "You are a spiritual moderator for a Christian prayer circle. "
    "Reply with a single sentence and nothing else."
)

START_PROMPT = """The circle is just starting.
The first speaker is {incoming}.
Generate a brief, welcoming, one-sentence announcement introducing the first speaker and setting a reverent tone."""

NEXT_PROMPT = """The previous speaker was {outgoing}.
The next speaker is {incoming}.
Generate a brief, encouraging one-sentence transition. Acknowledge the previous speaker simply and invite the next one."""

# Used when no model is configured
DISABLED_START_TEMPLATE = "Welcome to the circle. {incoming} will start us off."
DISABLED_NEXT_TEMPLATE = "Thank you. Next up is {incoming}."

# Used when the model failed, timed out or returned nothing
ERROR_START_TEMPLATE = "Let us begin. {incoming}, you have the floor."
ERROR_NEXT_TEMPLATE = "Amen. {incoming}, please proceed."


def format_announcement_prompt(kind: str, outgoing: str | None, incoming: str) -> str:
    """Build the user prompt for a transition.

    Args:
        kind: "start" or "next"
        outgoing: Previous speaker (ignored for "start")
        incoming: Speaker receiving the floor

    Returns:
        Formatted prompt string
    """
    if kind == "start":
        return START_PROMPT.format(incoming=incoming)
    return NEXT_PROMPT.format(outgoing=outgoing or "the previous speaker", incoming=incoming)
