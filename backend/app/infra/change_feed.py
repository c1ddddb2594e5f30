"""In-process row-change feed.

Repositories publish a row after every insert/update scoped to the owning user
id; listeners (the notification feed, socket bridges) subscribe per table and
user. Listener failures are logged and never reach the publisher.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Tuple

from app.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

Listener = Callable[[dict], Awaitable[None]]


@dataclass(slots=True)
class Subscription:
	table: str
	user_id: str
	listener: Listener
	feed: "ChangeFeed" = field(repr=False)
	active: bool = True

	def unsubscribe(self) -> None:
		if not self.active:
			return
		self.active = False
		self.feed._remove(self)


class ChangeFeed:
	def __init__(self) -> None:
		self._listeners: Dict[Tuple[str, str], List[Subscription]] = {}

	def subscribe(self, table: str, user_id: str, listener: Listener) -> Subscription:
		sub = Subscription(table=table, user_id=str(user_id), listener=listener, feed=self)
		self._listeners.setdefault((table, sub.user_id), []).append(sub)
		return sub

	def _remove(self, sub: Subscription) -> None:
		key = (sub.table, sub.user_id)
		subs = self._listeners.get(key, [])
		if sub in subs:
			subs.remove(sub)
		if not subs:
			self._listeners.pop(key, None)

	def listener_count(self, table: str, user_id: str) -> int:
		return len(self._listeners.get((table, str(user_id)), []))

	async def publish(self, table: str, user_id: str, row: dict) -> None:
		obs_metrics.inc_change_feed_event(table)
		for sub in list(self._listeners.get((table, str(user_id)), [])):
			if not sub.active:
				continue
			try:
				await sub.listener(row)
			except Exception:
				obs_metrics.inc_change_feed_failure(table)
				logger.exception("change feed listener failed", extra={"table": table, "user_id": str(user_id)})


change_feed = ChangeFeed()
