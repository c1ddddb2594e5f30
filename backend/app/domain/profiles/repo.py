"""Profile persistence: asyncpg implementation plus an in-memory twin."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from app.domain.profiles.models import OPTIONAL_PROFILE_FIELDS, Profile
from app.infra.memory import MemoryDatabase
from app.infra.postgres import get_pool

_DISCOVERY_SQL = """
SELECT *
FROM profiles
WHERE user_id <> $1
	AND ($2::text IS NULL OR full_name ILIKE '%' || $2 || '%')
ORDER BY full_name ASC, user_id ASC
"""

_INSERT_SQL = """
INSERT INTO profiles (user_id, full_name, email, role, department, institution_id, institution_roll_number, year_of_study)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
RETURNING *
"""


def _clean_search(search_term: Optional[str]) -> Optional[str]:
	term = (search_term or "").strip()
	return term or None


class PostgresProfileRepository:
	"""Reads and writes rows of the ``profiles`` table."""

	async def fetch_profile(self, user_id: str) -> Optional[Profile]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow("SELECT * FROM profiles WHERE user_id = $1", user_id)
		return Profile.from_record(dict(row)) if row else None

	async def fetch_profiles(self, user_ids: Iterable[str]) -> Dict[str, Profile]:
		ids = list({str(uid) for uid in user_ids})
		if not ids:
			return {}
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch("SELECT * FROM profiles WHERE user_id = ANY($1::uuid[])", ids)
		return {str(row["user_id"]): Profile.from_record(dict(row)) for row in rows}

	async def list_discovery_profiles(self, exclude_user_id: str, search_term: Optional[str] = None) -> List[Profile]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(_DISCOVERY_SQL, exclude_user_id, _clean_search(search_term))
		return [Profile.from_record(dict(row)) for row in rows]

	async def insert_profile(
		self,
		*,
		user_id: str,
		full_name: str,
		email: str,
		role: str,
		department: str,
		institution_id: Optional[str] = None,
		institution_roll_number: Optional[str] = None,
		year_of_study: Optional[int] = None,
	) -> Profile:
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				_INSERT_SQL,
				user_id,
				full_name,
				email,
				role,
				department,
				institution_id,
				institution_roll_number,
				year_of_study,
			)
		return Profile.from_record(dict(row))

	async def update_optional_fields(self, user_id: str, fields: Dict[str, str]) -> None:
		updates = {key: value for key, value in fields.items() if key in OPTIONAL_PROFILE_FIELDS}
		if not updates:
			return
		assignments = ", ".join(f"{column} = ${idx}" for idx, column in enumerate(updates, start=2))
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute(
				f"UPDATE profiles SET {assignments}, updated_at = NOW() WHERE user_id = $1",
				user_id,
				*updates.values(),
			)


class InMemoryProfileRepository:
	def __init__(self, db: MemoryDatabase) -> None:
		self._db = db

	async def fetch_profile(self, user_id: str) -> Optional[Profile]:
		self._db.check("fetch_profile")
		async with self._db.lock:
			row = self._db.profile(user_id)
			return Profile.from_record(row) if row else None

	async def fetch_profiles(self, user_ids: Iterable[str]) -> Dict[str, Profile]:
		self._db.check("fetch_profiles")
		async with self._db.lock:
			return {
				str(uid): Profile.from_record(self._db.profiles[str(uid)])
				for uid in set(user_ids)
				if str(uid) in self._db.profiles
			}

	async def list_discovery_profiles(self, exclude_user_id: str, search_term: Optional[str] = None) -> List[Profile]:
		self._db.check("list_discovery_profiles")
		term = _clean_search(search_term)
		async with self._db.lock:
			rows = [
				row
				for row in self._db.profiles.values()
				if row["user_id"] != str(exclude_user_id)
				and (term is None or term.lower() in row["full_name"].lower())
			]
		rows.sort(key=lambda row: (row["full_name"], row["user_id"]))
		return [Profile.from_record(row) for row in rows]

	async def insert_profile(
		self,
		*,
		user_id: str,
		full_name: str,
		email: str,
		role: str,
		department: str,
		institution_id: Optional[str] = None,
		institution_roll_number: Optional[str] = None,
		year_of_study: Optional[int] = None,
	) -> Profile:
		self._db.check("insert_profile")
		async with self._db.lock:
			row = {
				"user_id": str(user_id),
				"full_name": full_name,
				"email": email,
				"role": role,
				"department": department,
				"institution_id": institution_id,
				"institution_roll_number": institution_roll_number,
				"year_of_study": year_of_study,
				"connections_count": 0,
				"daily_streak": 0,
				"created_at": self._db.now(),
			}
			self._db.profiles[row["user_id"]] = row
			return Profile.from_record(row)

	async def update_optional_fields(self, user_id: str, fields: Dict[str, str]) -> None:
		self._db.check("update_optional_fields")
		async with self._db.lock:
			row = self._db.profile(user_id)
			if row is None:
				return
			row.update({key: value for key, value in fields.items() if key in OPTIONAL_PROFILE_FIELDS})
