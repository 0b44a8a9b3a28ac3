from typing import Sequence

CSV_ANSWER_SYSTEM_PROMPT = """
You are a helpful assistant that answers questions based on CSV data. The context provided is ranked by relevance using semantic similarity. Provide clear, accurate responses using the provided context, prioritizing information from the most relevant (first) entries.
"""

CSV_ANSWER_USER_TEMPLATE = """Based on the following CSV data context (ranked by relevance), please answer the user's question. Be helpful and specific, referencing the data when relevant. The context is ordered by similarity to the user's query, with the most relevant information first.

Context from CSV:
{context}

User Question: {question}

Please provide a comprehensive answer based on the context provided. If the context doesn't contain relevant information, please indicate that and provide general guidance if possible.

Answer:"""

FALLBACK_WITH_CONTEXT = """I understand you're asking: "{question}"

Based on the available CSV data context ({count} relevant {entries} found), I can see there is relevant information, but I'm currently unable to process it because the answer service is temporarily unavailable. Please ensure your GROQ_API_KEY is valid and try again.

Your CSV data has been processed and is available for analysis once the connection is restored."""

FALLBACK_WITHOUT_CONTEXT = """I understand you're asking: "{question}"

No relevant CSV data context was found, and I'm currently unable to access the answer service to provide a detailed response. The service is temporarily unavailable. This could be due to:

1. Missing or invalid API keys
2. Network connectivity issues
3. Temporary service outages

Please check your API configuration and try again. If you've uploaded CSV data, upload it again once the services are restored."""


def build_answer_user_prompt(question: str, context: Sequence[str]) -> str:
    return CSV_ANSWER_USER_TEMPLATE.format(context="\n\n".join(context), question=question)


def build_fallback_answer(question: str, context: Sequence[str]) -> str:
    """Deterministic answer used whenever the completion model cannot be reached."""
    count = len(context)
    if count:
        return FALLBACK_WITH_CONTEXT.format(
            question=question,
            count=count,
            entries="entry" if count == 1 else "entries",
        )
    return FALLBACK_WITHOUT_CONTEXT.format(question=question)
