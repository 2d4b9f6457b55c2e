from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

VERIFIED = "verified"
REJECTED = "rejected"
PENDING = "pending"

VERIFICATION_STATUSES = (VERIFIED, REJECTED, PENDING)


def utc_now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


@dataclass(frozen=True)
class SourceConfig:
    """One configured feed: where to fetch it and how to label its items."""

    feed_url: str
    source_name: str
    category: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SourceConfig":
        return cls(
            feed_url=str(data["url"]),
            source_name=str(data["source"]),
            category=str(data["category"]),
        )


@dataclass
class CandidateItem:
    """A feed entry not yet confirmed to be new or content-complete."""

    title: str
    url: str
    source_name: str
    category: str
    image_url: str
    published_at: datetime | None = None


@dataclass(frozen=True)
class ScrapedContent:
    """Full article text as returned by the scraping service.

    Frozen: this is the text every summary is checked against.
    """

    source_url: str
    markdown_text: str


@dataclass
class ScrapeResult:
    content: ScrapedContent | None = None
    error: str | None = None
    credits_exhausted: bool = False

    @property
    def ok(self) -> bool:
        return self.content is not None


@dataclass
class SummaryAttempt:
    text: str
    attempt_number: int


@dataclass
class SummaryResult:
    """Outcome of the summary stage; ``summary`` is None when every attempt failed."""

    summary: SummaryAttempt | None = None
    attempts: int = 0
    rate_limited: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.summary is not None

    @property
    def text(self) -> str | None:
        return self.summary.text if self.summary else None


@dataclass
class VerificationAttempt:
    """One call to the verification service, as recorded in the audit log."""

    attempt_number: int
    status: str
    is_valid: bool = False
    errors: list[str] = field(default_factory=list)
    corrected_summary: str | None = None
    claims_checked: int = 0
    claims_verified: int = 0
    claims_rejected: int = 0
    fabricated_claims: list[str] = field(default_factory=list)
    timestamp: str = field(default_factory=utc_now_iso)

    @classmethod
    def pending(cls, attempt_number: int, error: str) -> "VerificationAttempt":
        return cls(attempt_number=attempt_number, status=PENDING, errors=[error])

    @classmethod
    def from_payload(cls, attempt_number: int, payload: Any) -> "VerificationAttempt":
        """Convert the service's JSON body into a typed attempt.

        Raises ValueError when the body does not have the expected shape.
        """
        if not isinstance(payload, dict):
            raise ValueError("verification payload is not an object")

        status = payload.get("status")
        if status not in VERIFICATION_STATUSES:
            raise ValueError(f"unknown verification status: {status!r}")

        details = payload.get("verificationDetails") or {}
        if not isinstance(details, dict):
            raise ValueError("verificationDetails is not an object")

        corrected = payload.get("correctedSummary")
        if corrected is not None and not isinstance(corrected, str):
            raise ValueError("correctedSummary is not a string")

        errors = payload.get("errors") or []
        fabricated = details.get("fabricatedClaims") or []
        if not isinstance(errors, list) or not isinstance(fabricated, list):
            raise ValueError("errors and fabricatedClaims must be lists")

        try:
            counts = [
                int(details.get(key) or 0)
                for key in ("claimsChecked", "claimsVerified", "claimsRejected")
            ]
        except (TypeError, ValueError) as exc:
            raise ValueError(f"claim counts are not integers: {exc}") from exc

        return cls(
            attempt_number=attempt_number,
            status=status,
            is_valid=payload.get("isValid") is True,
            errors=[str(e) for e in errors],
            corrected_summary=corrected or None,
            claims_checked=counts[0],
            claims_verified=counts[1],
            claims_rejected=counts[2],
            fabricated_claims=[str(c) for c in fabricated],
        )

    def to_payload(self) -> dict[str, Any]:
        """Wire shape used by the verification service response."""
        payload: dict[str, Any] = {
            "isValid": self.is_valid,
            "status": self.status,
            "errors": list(self.errors),
            "verificationDetails": {
                "claimsChecked": self.claims_checked,
                "claimsVerified": self.claims_verified,
                "claimsRejected": self.claims_rejected,
                "fabricatedClaims": list(self.fabricated_claims),
            },
        }
        if self.corrected_summary:
            payload["correctedSummary"] = self.corrected_summary
        return payload

    def to_log_entry(self) -> dict[str, Any]:
        return {
            "attempt": self.attempt_number,
            "timestamp": self.timestamp,
            "status": self.status,
            "isValid": self.is_valid,
            "errors": list(self.errors),
            "correctedSummary": self.corrected_summary,
            "details": {
                "claimsChecked": self.claims_checked,
                "claimsVerified": self.claims_verified,
                "claimsRejected": self.claims_rejected,
                "fabricatedClaims": list(self.fabricated_claims),
            },
        }


@dataclass
class VerificationOutcome:
    status: str
    summary: str
    attempts: list[VerificationAttempt] = field(default_factory=list)


@dataclass
class ProcessedArticle:
    """The persisted record for one distinct article URL."""

    url: str
    title: str
    source_name: str
    category: str
    image_url: str
    full_content: str
    final_summary: str
    published_at: datetime | None
    verification_status: str
    verification_log: list[VerificationAttempt] = field(default_factory=list)

    @classmethod
    def from_processing(
        cls,
        item: CandidateItem,
        content: ScrapedContent,
        outcome: VerificationOutcome,
        max_content_length: int,
    ) -> "ProcessedArticle":
        return cls(
            url=item.url,
            title=item.title,
            source_name=item.source_name,
            category=item.category,
            image_url=item.image_url,
            full_content=content.markdown_text[:max_content_length],
            final_summary=outcome.summary,
            published_at=item.published_at,
            verification_status=outcome.status,
            verification_log=list(outcome.attempts),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "source": self.source_name,
            "category": self.category,
            "image_url": self.image_url,
            "full_content": self.full_content,
            "ai_summary": self.final_summary,
            "pub_date": self.published_at.isoformat() if self.published_at else None,
            "ai_verification_status": self.verification_status,
            "verification_logs": [a.to_log_entry() for a in self.verification_log],
        }


@dataclass
class PersistResult:
    ok: bool
    error: str | None = None


@dataclass
class RunResult:
    """Aggregate counters for one pipeline run."""

    success: bool
    total_fetched: int = 0
    new_articles: int = 0
    processed: int = 0
    failed: int = 0
    rate_limited: int = 0
    timestamp: str = field(default_factory=utc_now_iso)
    scraper_credits_exhausted: bool = False
    scraper_exhausted_at: str | None = None
    error: str | None = None

    def to_json(self) -> dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error or "Unknown error"}
        return {
            "success": True,
            "totalFetched": self.total_fetched,
            "newArticles": self.new_articles,
            "processed": self.processed,
            "failed": self.failed,
            "rateLimited": self.rate_limited,
            "timestamp": self.timestamp,
            "scraperCreditsExhausted": self.scraper_credits_exhausted,
            "scraperExhaustedAt": self.scraper_exhausted_at,
        }
