"""Prompt templates for topic classification."""

SYSTEM_CLASSIFIER = (
    "You are a semantic relevance analyzer. Respond ONLY with a valid JSON "
    "array. No markdown, no code blocks, no other text."
)

CLASSIFY_ARTICLE = """\
You are a semantic relevance analyzer. Given an article and a list of topics \
organized by modules, find the TOP {top_n} most relevant topics.

Score semantically: an article about "Cloud Infrastructure" is relevant to \
topics like "Cloud", "Distributed Systems" or "Infrastructure" even when the \
exact words differ.

Article Title: "{title}"
Article Summary: "{summary}"
Article Text (first {body_chars} chars):
{body}

AVAILABLE TOPICS BY MODULE:
{topic_context}

Respond ONLY with a JSON array (no other text):
[
  {{"title": "Topic Name", "confidence": 0.85, "reasoning": "why it matches"}}
]
Use the topic titles exactly as listed. Confidence must be between 0 and 1. \
Include at most {top_n} items. No markdown."""
