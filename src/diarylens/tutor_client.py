"""Gemini-backed English writing tutor.

Sends a diary entry to the model with the tutor system instruction and
returns the raw markdown reply. Parsing the reply is the job of
``diarylens.analysis_parser``.
"""
from __future__ import annotations

import logging
import os
from typing import Any

log = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_TEMPERATURE = 0.8
EMPTY_REPLY_TEXT = "Sorry, I couldn't generate a response. Please try again."

TUTOR_SYSTEM_INSTRUCTION = """
# Role: Professional English Writing Tutor & Editor

# Goal
You are a friendly and professional English tutor. Your goal is to help the user improve their English writing skills based on their daily diary entries. You must rewrite the diary to sound natural, native-like, and sophisticated, while preserving the original meaning and tone.

# Instructions
1. **Analyze the Input**: Read the user's diary carefully to understand the context, mood, and intended meaning.
2. **Native Rewrite**: Rewrite the entire diary immediately into a **"Native Speaker Version"**. Do not provide a literal correction first; go straight to the most natural, culturally appropriate, and grammatically perfect version.
3. **Grammar & Expression Lesson**: Identify 5-7 specific mistakes or awkward phrasings from the original text. Explain **in Korean** why they were corrected and teach the underlying grammar or nuance.
4. **Vocabulary List**: Extract or suggest 10 useful vocabulary words or phrases relevant to the diary topic. Provide the English word and its Korean meaning.
5. **Key Sentence**: Select one "Golden Sentence" from the corrected version that is useful for the user to memorize.

# Output Format (Markdown)
Please output the response strictly in the following Markdown structure:

---
### Native Version
> (Insert the fully corrected, natural English diary here)

### Grammar & Feedback
*   **[Original Phrase] → [Better/Corrected Phrase]**
    *   (Explanation in Korean: Why is this better? What is the grammar rule or nuance?)
*   ... (Repeat for 5-7 key points)

### Vocabulary
| No. | Word / Phrase | Meaning (Korean) |
|:---:|:---:|:---:|
| 1 | (Word) | (Meaning) |
| ... | ... | ... |
| 10 | (Word) | (Meaning) |

### Key Sentence
> **"(Insert the sentence here)"**
> (Korean translation)
*   **(Brief tip in Korean on how to use this pattern)**

---

# Constraint
- All explanations must be in **Korean**.
- The tone should be encouraging, helpful, and educational.
- Do not provide an "Intermediate" or "Literal" correction. Only provide the polished Native version.
"""


class GeminiTutorClient:
    """Tutor backed by the Gemini API (``google-genai`` SDK).

    Parameters
    ----------
    api_key:
        Gemini API key. Falls back to ``GEMINI_API_KEY``, then ``API_KEY``.
    model_name:
        Model identifier. Falls back to ``DIARYLENS_MODEL``, then
        ``gemini-2.5-flash``.
    temperature:
        Sampling temperature sent with every request.
    client:
        Pre-built SDK client (anything with ``models.generate_content``).
        When given, no API key is required.
    """

    def __init__(
        self,
        *,
        api_key: str = "",
        model_name: str = "",
        temperature: float = DEFAULT_TEMPERATURE,
        client: Any = None,
    ) -> None:
        self._model_name = model_name or os.environ.get("DIARYLENS_MODEL", "") or DEFAULT_MODEL
        self._temperature = temperature
        if client is not None:
            self._client = client
            return
        key = api_key or os.environ.get("GEMINI_API_KEY", "") or os.environ.get("API_KEY", "")
        if not key:
            raise ValueError(
                "Gemini API key required: pass api_key= or set GEMINI_API_KEY"
            )
        from google import genai

        self._client = genai.Client(api_key=key)

    def model_version(self) -> str:
        return self._model_name

    def analyze(self, diary_text: str) -> str:
        """Return the tutor's markdown reply for ``diary_text``."""
        if not diary_text or not diary_text.strip():
            raise ValueError("diary text is empty")
        try:
            response = self._client.models.generate_content(
                model=self._model_name,
                contents=diary_text,
                config={
                    "system_instruction": TUTOR_SYSTEM_INSTRUCTION,
                    "temperature": self._temperature,
                },
            )
        except Exception:
            log.exception("Gemini request failed (model=%s)", self._model_name)
            raise
        text = getattr(response, "text", None) or ""
        if not text.strip():
            log.warning("Gemini returned an empty reply (model=%s)", self._model_name)
            return EMPTY_REPLY_TEXT
        return text
