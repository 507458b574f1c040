"""Crawl result models."""

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass
class CrawlResult:
    """Contacts accumulated over one crawl."""

    emails: set[str] = field(default_factory=set)
    phones: set[str] = field(default_factory=set)
    pages_scanned: int = 0
    pages_failed: int = 0

    def add_contacts(self, emails: set[str], phones: set[str]) -> None:
        """Merge contacts found on one page."""
        self.emails |= emails
        self.phones |= phones

    def to_dict(self) -> dict[str, Any]:
        """Convert to the public result shape."""
        return {
            "foundEmails": sorted(self.emails),
            "foundPhones": sorted(self.phones),
            "pagesScanned": self.pages_scanned,
        }

    def to_json(self) -> str:
        """Serialize for the cache store."""
        data = self.to_dict()
        data["pagesFailed"] = self.pages_failed
        return json.dumps(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CrawlResult":
        """Rebuild a result from ``to_dict`` output."""
        return cls(
            emails=set(data.get("foundEmails", [])),
            phones=set(data.get("foundPhones", [])),
            pages_scanned=int(data.get("pagesScanned", 0)),
            pages_failed=int(data.get("pagesFailed", 0)),
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> "CrawlResult":
        """Deserialize a cached result.

        Raises:
            ValueError: If the payload is not valid JSON or not an object
        """
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
        return cls.from_dict(data)
