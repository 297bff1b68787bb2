"""LLM prompt templates for attention and engagement decisions"""

ATTENTION_PROMPT = """You are in a room with other users. You should only respond when addressed or when the conversation is relevant to you.

Response options:
{respond_marker} - Message is directed at you or conversation is relevant
{ignore_marker} - Message is not interesting or not directed at you
{stop_marker} - User wants you to stop or conversation has concluded

Recent messages:
{history}

Latest message: {message}

Choose one response option:"""

LIKE_PROMPT = """You are deciding whether to like a tweet. Consider if the content is positive, interesting, or relevant.

Tweet: {content}

Respond with only 'true' or 'false':"""

RETWEET_PROMPT = """You are deciding whether to retweet. Only retweet if the content is highly valuable, interesting, or aligns with your values.

Tweet: {content}

Respond with only 'true' or 'false':"""

QUOTE_PROMPT = """You are deciding whether to quote tweet. Quote tweet if the content deserves commentary, could benefit from additional context, or warrants a thoughtful response.

Tweet: {content}

Respond with only 'true' or 'false':"""


def format_history(history: list[tuple[str, str]]) -> str:
    """Render history as bullet lines of content; authors are dropped."""
    return "\n".join(f"- {content}" for _, content in history)
