"""
Relevance Scorer

Keyword-overlap heuristic between a question, the context it was answered
from and the answer itself. Deterministic, not a calibrated probability.
"""

MIN_TOKEN_LENGTH = 4


def tokenize(text: str) -> list:
    return text.lower().split()


def score(question: str, answer: str, context: str) -> float:
    """
    Share of question tokens that appear in both the context and the answer

    Only question tokens longer than three characters can match, but every
    question token counts towards the denominator.

    Returns:
        Score in [0, 1]
    """
    question_tokens = tokenize(question)
    context_tokens = set(tokenize(context))
    answer_tokens = set(tokenize(answer))

    matches = sum(
        1 for token in question_tokens
        if len(token) >= MIN_TOKEN_LENGTH and token in context_tokens and token in answer_tokens
    )

    return min(matches / max(len(question_tokens), 1), 1.0)
