"""
Profile and onboarding persistence.

Both records steer what BrandPilot searches for and how generated text
sounds; ``load_context`` bundles them for the harvester and the writers.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from brandpilot.clients.sqlite_store import SQLiteStore
from brandpilot.core.errors import NotFound, PersistenceError
from brandpilot.models import OnboardingProfile, Profile, ProfileContext

logger = logging.getLogger(__name__)

_PROFILE_FIELDS = ("email", "ai_voice", "goal", "topics_of_interest", "about_context")
_ONBOARDING_FIELDS = (
    "name",
    "username",
    "user_type",
    "domain",
    "social_media_goal",
    "business_description",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProfileStore:
    def __init__(self, store: SQLiteStore) -> None:
        self._store = store

    def get(self, user_id: str) -> Optional[Profile]:
        with self._store.connect() as conn:
            row = conn.execute("SELECT * FROM profiles WHERE id = ?", (user_id,)).fetchone()
        return _row_to_profile(row) if row else None

    def require(self, user_id: str) -> Profile:
        profile = self.get(user_id)
        if profile is None:
            raise NotFound("Profile not found")
        return profile

    def get_by_email(self, email: str) -> Optional[Profile]:
        with self._store.connect() as conn:
            row = conn.execute("SELECT * FROM profiles WHERE email = ?", (email,)).fetchone()
        return _row_to_profile(row) if row else None

    def get_or_create(self, email: str, user_id: Optional[str] = None) -> Profile:
        """Return the profile for ``email``, creating one with defaults if missing."""
        existing = self.get_by_email(email)
        if existing is not None:
            return existing

        profile = Profile(id=user_id or str(uuid.uuid4()), email=email)
        self._insert(profile)
        logger.info("Created profile %s", profile.id)
        return profile

    def save(self, profile: Profile) -> Profile:
        if self.get(profile.id) is None:
            self._insert(profile)
        else:
            self.update(profile.id, profile.model_dump(include=set(_PROFILE_FIELDS)))
        return self.require(profile.id)

    def update(self, user_id: str, changes: Dict[str, Any]) -> Profile:
        """Apply ``changes`` to the known profile columns and return the result."""
        fields = {key: value for key, value in changes.items() if key in _PROFILE_FIELDS}
        if "topics_of_interest" in fields:
            fields["topics_of_interest"] = json.dumps(list(fields["topics_of_interest"] or []))
        if fields:
            assignments = ", ".join(f"{column} = ?" for column in fields)
            params = [*fields.values(), _utcnow().isoformat(), user_id]
            try:
                with self._store.connect() as conn:
                    cursor = conn.execute(
                        f"UPDATE profiles SET {assignments}, updated_at = ? WHERE id = ?",
                        params,
                    )
                    updated = cursor.rowcount
            except sqlite3.Error as exc:
                raise PersistenceError(f"Failed to update profile: {exc}") from exc
            if not updated:
                raise NotFound("Profile not found")
        return self.require(user_id)

    def get_onboarding(self, user_id: str) -> Optional[OnboardingProfile]:
        with self._store.connect() as conn:
            row = conn.execute(
                "SELECT * FROM onboarding_profiles WHERE user_id = ?", (user_id,)
            ).fetchone()
        if not row:
            return None
        return OnboardingProfile(
            user_id=row["user_id"],
            **{field: row[field] for field in _ONBOARDING_FIELDS},
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def upsert_onboarding(self, onboarding: OnboardingProfile) -> OnboardingProfile:
        now = _utcnow().isoformat()
        columns = ", ".join(_ONBOARDING_FIELDS)
        placeholders = ", ".join("?" for _ in _ONBOARDING_FIELDS)
        updates = ", ".join(f"{field} = excluded.{field}" for field in _ONBOARDING_FIELDS)
        try:
            with self._store.connect() as conn:
                conn.execute(
                    f"""
                    INSERT INTO onboarding_profiles (
                        user_id, {columns}, created_at, updated_at
                    )
                    VALUES (?, {placeholders}, ?, ?)
                    ON CONFLICT(user_id) DO UPDATE SET
                        {updates},
                        updated_at = excluded.updated_at
                    """,
                    (
                        onboarding.user_id,
                        *(getattr(onboarding, field) for field in _ONBOARDING_FIELDS),
                        now,
                        now,
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to save onboarding profile: {exc}") from exc
        stored = self.get_onboarding(onboarding.user_id)
        if stored is None:
            raise PersistenceError("Onboarding profile was not persisted")
        return stored

    def load_context(self, user_id: str) -> ProfileContext:
        return ProfileContext(
            user_id=user_id,
            profile=self.get(user_id),
            onboarding=self.get_onboarding(user_id),
        )

    def _insert(self, profile: Profile) -> None:
        try:
            with self._store.connect() as conn:
                conn.execute(
                    """
                    INSERT INTO profiles (
                        id, email, ai_voice, goal, topics_of_interest, about_context,
                        created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        profile.id,
                        profile.email,
                        profile.ai_voice,
                        profile.goal,
                        json.dumps(profile.topics_of_interest),
                        profile.about_context,
                        profile.created_at.isoformat(),
                        profile.updated_at.isoformat(),
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to create profile: {exc}") from exc


def _row_to_profile(row: sqlite3.Row) -> Profile:
    return Profile(
        id=row["id"],
        email=row["email"],
        ai_voice=row["ai_voice"],
        goal=row["goal"],
        topics_of_interest=json.loads(row["topics_of_interest"] or "[]"),
        about_context=row["about_context"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


__all__ = ["ProfileStore"]
