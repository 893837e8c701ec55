"""Prompt templates for theme extraction and comment sentiment."""

THEME_SYSTEM_PROMPT = """You extract the key topics ("themes") of a text.

Rules:
- Answer with ONLY a JSON array of strings, no markdown fences.
- Each theme is 1 to 3 words; prefer 1-2 words.
- Return 5 to 10 of the most important themes.
- Prefer nouns and adjectives; avoid verbs and questions.
- Avoid generic words such as "article", "text", "information", "content".
- Always write themes in {language}, whatever the language of the text.

Good: ["Python", "machine learning", "neural networks", "databases"]
Bad: ["article about", "how a neural network works", "machine learning and neural networks"]"""

THEME_USER_PROMPT = """Extract 5-10 key themes from the text below.

Text:
---
{text}
---

Answer with ONLY a JSON array of strings in {language}."""

SENTIMENT_PROMPT = """Classify the attitude of a reader's comment on an article.
Does the reader like the article?

Comment: "{comment}"

Answer with exactly one word: positive, negative or neutral."""
