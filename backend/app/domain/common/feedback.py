"""User-visible outcome of a mutation (rendered as a toast by clients)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True)
class Feedback:
	ok: bool
	title: str
	description: str
	variant: str = "default"
	reason: Optional[str] = None

	@classmethod
	def success(cls, title: str, description: str) -> "Feedback":
		return cls(ok=True, title=title, description=description)

	@classmethod
	def failure(cls, description: str, *, reason: Optional[str] = None) -> "Feedback":
		return cls(ok=False, title="Error", description=description, variant="destructive", reason=reason)

	def to_dict(self) -> dict:
		return {
			"ok": self.ok,
			"title": self.title,
			"description": self.description,
			"variant": self.variant,
			"reason": self.reason,
		}
