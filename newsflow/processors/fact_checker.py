from __future__ import annotations

import json
import logging
import re

from newsflow.models.types import REJECTED, VERIFIED, VerificationAttempt
from newsflow.processors.llm_client import ChatClient, ServiceError

logger = logging.getLogger(__name__)

MAX_SOURCE_CHARS = 15000
MAX_CORRECTION_SOURCE_CHARS = 12000
CORRECTION_ATTEMPT_LIMIT = 3

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

# Error descriptions the model produces for differences that are not factual.
_FALSE_POSITIVE_MARKERS = (
    "grammatical form",
    "inflection",
    "declension",
    "identical",
    "same meaning",
    "forma gramatyczna",
    "odmiana",
    "identyczne",
    "takie samo",
)

VERIFICATION_PROMPT = """# ROLE: Verification editor

You check article summaries against the original article and report only REAL factual errors.

# ORIGINAL ARTICLE:
{content}

# SUMMARY TO VERIFY:
{summary}

# TITLE: {title}

# WHAT COUNTS AS AN ERROR:
1. A changed number, amount or date (source says "15 million", summary says "20 million")
2. A misspelled name (source "Kowalski", summary "Kowalsky")
3. A hallucination: information that does not appear in the source at all
4. A change of meaning: a statement twisted away from what the source says

# WHAT IS NOT AN ERROR (do not report):
- A different grammatical form or inflection of the same word
- Abbreviations or expansions ("mln zł" vs "million zloty")
- Paraphrase that keeps the meaning
- Omitting less important details
- Reordering information or sentence structure

# PROCEDURE:
1. Read the whole source carefully.
2. For every fact in the summary find its counterpart in the source.
3. Check that the meaning and the figures match, ignoring grammatical form.
4. Report only serious factual discrepancies.

# ANSWER AS JSON:

If the summary is factually correct:
{{"is_valid": true, "errors": [], "claimsChecked": X, "claimsVerified": X, "claimsRejected": 0, "fabricatedClaims": []}}

If there are real factual errors:
{{"is_valid": false, "errors": ["error 1", "error 2"], "claimsChecked": X, "claimsVerified": Y, "claimsRejected": Z, "fabricatedClaims": ["fabricated claim"]}}

ANSWER WITH PLAIN JSON ONLY:"""

CORRECTION_PROMPT = """# TASK: Write a corrected summary of the article

The previous summary contained errors:
{errors}

# ORIGINAL ARTICLE:
{content}

# TITLE: {title}

# REQUIREMENTS:
- 3-8 sentences
- ONLY facts from the original text
- Wrap key information (names, figures, dates) in <b></b> tags
- Do not add anything that is not in the source
- Write in the language of the original article

CORRECTED SUMMARY:"""


def is_real_error(error: str) -> bool:
    lowered = error.lower()
    return not any(marker in lowered for marker in _FALSE_POSITIVE_MARKERS)


def _parse_verdict(text: str) -> dict:
    match = _JSON_OBJECT.search(text)
    if not match:
        raise ValueError("No JSON found in verification response")
    verdict = json.loads(match.group(0))
    if not isinstance(verdict, dict):
        raise ValueError("Verification response is not a JSON object")
    return verdict


def _as_int(value: object) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0


class FactChecker:
    """The verification service: checks summary claims against the source text.

    A rejected summary gets a corrected rewrite while ``attempt_number`` is
    below ``CORRECTION_ATTEMPT_LIMIT``.
    """

    def __init__(self, client: ChatClient) -> None:
        self._client = client

    def check(
        self,
        title: str,
        original_content: str,
        ai_summary: str,
        attempt_number: int = 1,
    ) -> VerificationAttempt:
        """Raises ServiceError (or RateLimitedError) when the model cannot be reached."""
        logger.info("Verifying summary for: %s... (attempt %d)", title[:50], attempt_number)

        answer = self._client.complete(
            VERIFICATION_PROMPT.format(
                content=original_content[:MAX_SOURCE_CHARS],
                summary=ai_summary,
                title=title,
            ),
            max_tokens=800,
            temperature=0.1,
        )

        try:
            verdict = _parse_verdict(answer)
        except ValueError as exc:
            logger.error("Failed to parse verification result: %s", exc)
            return VerificationAttempt.pending(attempt_number, "Verification parsing failed")

        model_valid = verdict.get("is_valid") is True or verdict.get("isValid") is True
        errors = [str(e) for e in verdict.get("errors") or []]
        real_errors = [e for e in errors if is_real_error(e)]
        valid = model_valid or not real_errors

        result = VerificationAttempt(
            attempt_number=attempt_number,
            status=VERIFIED if valid else REJECTED,
            is_valid=valid,
            errors=real_errors,
            claims_checked=_as_int(verdict.get("claimsChecked")),
            claims_verified=_as_int(verdict.get("claimsVerified")),
            claims_rejected=len(real_errors),
            fabricated_claims=[str(c) for c in verdict.get("fabricatedClaims") or []],
        )

        if not valid and attempt_number < CORRECTION_ATTEMPT_LIMIT:
            logger.info(
                "Summary rejected with %d real errors. Generating correction...",
                len(real_errors),
            )
            result.corrected_summary = self._correct(title, original_content, real_errors)

        logger.info(
            "Verification complete. Status: %s, Valid: %s, Errors: %d",
            result.status,
            result.is_valid,
            len(real_errors),
        )
        return result

    def _correct(self, title: str, original_content: str, errors: list[str]) -> str | None:
        numbered = "\n".join(f"{i}. {e}" for i, e in enumerate(errors, start=1))
        try:
            corrected = self._client.complete(
                CORRECTION_PROMPT.format(
                    errors=numbered,
                    content=original_content[:MAX_CORRECTION_SOURCE_CHARS],
                    title=title,
                ),
                max_tokens=500,
                temperature=0.2,
            )
        except ServiceError as exc:
            logger.warning("Correction request failed: %s", exc)
            return None
        return corrected.strip() or None
