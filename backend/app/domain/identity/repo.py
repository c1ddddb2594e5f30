"""Account and authority-audit persistence."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

import asyncpg

from app.domain.identity.exceptions import AccountConflict
from app.infra.memory import MemoryDatabase
from app.infra.postgres import get_pool


class PostgresAccountRepository:
	async def create_account(
		self,
		*,
		email: str,
		password_hash: str,
		email_confirmed: bool,
		metadata: Dict[str, Any],
	) -> dict:
		pool = await get_pool()
		async with pool.acquire() as conn:
			try:
				row = await conn.fetchrow(
					"""
					INSERT INTO accounts (email, password_hash, email_confirmed, metadata)
					VALUES ($1, $2, $3, $4::jsonb)
					RETURNING id, email, email_confirmed
					""",
					email,
					password_hash,
					email_confirmed,
					json.dumps(metadata),
				)
			except asyncpg.UniqueViolationError:
				raise AccountConflict() from None
		return {"id": str(row["id"]), "email": row["email"], "email_confirmed": row["email_confirmed"]}

	async def delete_account(self, account_id: str) -> None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute("DELETE FROM accounts WHERE id = $1", account_id)

	async def log_authority_action(
		self,
		*,
		action_type: str,
		actor_id: str,
		target_user_id: Optional[str],
		details: Dict[str, Any],
	) -> None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute(
				"""
				INSERT INTO authority_audit_log (action_type, actor_id, target_user_id, details)
				VALUES ($1, $2, $3, $4::jsonb)
				""",
				action_type,
				actor_id,
				target_user_id,
				json.dumps(details),
			)


class InMemoryAccountRepository:
	def __init__(self, db: MemoryDatabase) -> None:
		self._db = db

	async def create_account(
		self,
		*,
		email: str,
		password_hash: str,
		email_confirmed: bool,
		metadata: Dict[str, Any],
	) -> dict:
		self._db.check("create_account")
		async with self._db.lock:
			if any(row["email"].lower() == email.lower() for row in self._db.accounts.values()):
				raise AccountConflict()
			row = {
				"id": self._db.new_id(),
				"email": email,
				"password_hash": password_hash,
				"email_confirmed": email_confirmed,
				"metadata": dict(metadata),
				"created_at": self._db.now(),
			}
			self._db.accounts[row["id"]] = row
		return {"id": row["id"], "email": row["email"], "email_confirmed": email_confirmed}

	async def delete_account(self, account_id: str) -> None:
		self._db.check("delete_account")
		async with self._db.lock:
			self._db.accounts.pop(str(account_id), None)

	async def log_authority_action(
		self,
		*,
		action_type: str,
		actor_id: str,
		target_user_id: Optional[str],
		details: Dict[str, Any],
	) -> None:
		self._db.check("log_authority_action")
		async with self._db.lock:
			self._db.authority_audit_log.append(
				{
					"action_type": action_type,
					"actor_id": str(actor_id),
					"target_user_id": target_user_id,
					"details": dict(details),
					"created_at": self._db.now(),
				}
			)
