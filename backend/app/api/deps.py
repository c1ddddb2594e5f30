"""Request-scoped dependencies: the data gateway and per-user sessions.

Routes never touch repositories directly. They receive a signed-in
``SessionContext`` plus the services built on top of it; the session is torn
down when the request finishes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator, Optional

from fastapi import Depends

from app.domain.connections.repo import InMemoryConnectionRepository, PostgresConnectionRepository
from app.domain.connections.service import ConnectionService
from app.domain.identity.provisioning import AccountProvisioner
from app.domain.identity.repo import InMemoryAccountRepository, PostgresAccountRepository
from app.domain.identity.session import SessionContext
from app.domain.notifications.feed import NotificationFeed
from app.domain.notifications.repo import InMemoryNotificationRepository, PostgresNotificationRepository
from app.domain.notifications.service import NotificationService
from app.domain.profiles.repo import InMemoryProfileRepository, PostgresProfileRepository
from app.infra.auth import AuthenticatedUser, get_current_user
from app.infra.change_feed import ChangeFeed, change_feed
from app.infra.memory import MemoryDatabase


@dataclass(slots=True)
class Gateway:
	profiles: object
	connections: object
	notifications: object
	accounts: object
	feed: ChangeFeed


def postgres_gateway(feed: ChangeFeed = change_feed) -> Gateway:
	return Gateway(
		profiles=PostgresProfileRepository(),
		connections=PostgresConnectionRepository(feed),
		notifications=PostgresNotificationRepository(feed),
		accounts=PostgresAccountRepository(),
		feed=feed,
	)


def memory_gateway(db: Optional[MemoryDatabase] = None, feed: Optional[ChangeFeed] = None) -> Gateway:
	db = db or MemoryDatabase()
	feed = feed or ChangeFeed()
	return Gateway(
		profiles=InMemoryProfileRepository(db),
		connections=InMemoryConnectionRepository(db, feed),
		notifications=InMemoryNotificationRepository(db, feed),
		accounts=InMemoryAccountRepository(db),
		feed=feed,
	)


_gateway: Optional[Gateway] = None


def set_gateway(gateway: Optional[Gateway]) -> None:
	global _gateway
	_gateway = gateway


def get_gateway() -> Gateway:
	global _gateway
	if _gateway is None:
		_gateway = postgres_gateway()
	return _gateway


async def get_session(
	user: AuthenticatedUser = Depends(get_current_user),
	gateway: Gateway = Depends(get_gateway),
) -> AsyncIterator[SessionContext]:
	session = await SessionContext.sign_in(user, gateway.profiles)
	try:
		yield session
	finally:
		await session.sign_out()


def get_notification_service(gateway: Gateway = Depends(get_gateway)) -> NotificationService:
	return NotificationService(gateway.notifications)


def get_connection_service(
	session: SessionContext = Depends(get_session),
	gateway: Gateway = Depends(get_gateway),
	notifier: NotificationService = Depends(get_notification_service),
) -> ConnectionService:
	return ConnectionService(session, gateway.connections, gateway.profiles, notifier)


def get_notification_feed(
	session: SessionContext = Depends(get_session),
	gateway: Gateway = Depends(get_gateway),
	notifier: NotificationService = Depends(get_notification_service),
	connections: ConnectionService = Depends(get_connection_service),
) -> NotificationFeed:
	return NotificationFeed(session, notifier, connections, gateway.feed)


def get_provisioner(gateway: Gateway = Depends(get_gateway)) -> AccountProvisioner:
	return AccountProvisioner(gateway.accounts, gateway.profiles)


async def open_notification_feed(user: AuthenticatedUser) -> NotificationFeed:
	"""Build a feed for a socket connection; closing the feed signs the session out."""
	gateway = get_gateway()
	session = await SessionContext.sign_in(user, gateway.profiles)
	notifier = NotificationService(gateway.notifications)
	connections = ConnectionService(session, gateway.connections, gateway.profiles, notifier)
	return NotificationFeed(session, notifier, connections, gateway.feed)
