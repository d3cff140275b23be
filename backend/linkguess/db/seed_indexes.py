# backend/linkguess/db/seed_indexes.py
"""
Idempotent index seeding for LinkGuess.

- Uses get_collection() (no direct client here).
- Matching by KEYS: if an index with same keys exists, keep it when options match.
- If options differ (unique / partialFilterExpression), drop & recreate.
- Unique: one attempt per (user_id, challenge_id), one reward per comment_id,
  one profile per user_id.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple, Union

from pymongo import ASCENDING, DESCENDING
from pymongo.operations import IndexModel

from linkguess.core.logging_config import get_loggers
from linkguess.db.mongodb import (
    ATTEMPTS,
    CHALLENGES,
    COMMENT_REWARDS,
    GUESSES,
    USER_PROFILES,
    get_collection,
)

logger_generic, _ = get_loggers()

Direction = Union[int, str]
KeySpec = List[Tuple[str, Direction]]


def _normalize_key_from_mongo(key_doc: Dict[str, Any]) -> KeySpec:
    """Mongo returns an OrderedDict-like mapping; convert to list of (field, direction)."""
    norm: KeySpec = []
    for k, v in key_doc.items():
        if isinstance(v, (int, float)):
            norm.append((k, int(v)))
        else:
            norm.append((k, str(v)))
    return norm


async def _find_existing_by_keys(coll, keys: KeySpec) -> Optional[Dict[str, Any]]:
    async for ix in coll.list_indexes():
        if 'key' in ix and _normalize_key_from_mongo(ix['key']) == keys:
            return ix
    return None


def _same_options(existing: Dict[str, Any], *, unique: Optional[bool], partial: Optional[Dict[str, Any]]) -> bool:
    if bool(unique) != bool(existing.get('unique', False)):
        return False
    return (partial or None) == (existing.get('partialFilterExpression') or None)


async def ensure_index(coll_name: str, keys: KeySpec, *, name: Optional[str] = None,
                       unique: Optional[bool] = None,
                       partial: Optional[Dict[str, Any]] = None) -> None:
    coll = get_collection(coll_name)
    existing = await _find_existing_by_keys(coll, keys)
    if existing and _same_options(existing, unique=unique, partial=partial):
        return
    if existing:
        await coll.drop_index(existing['name'])
    opts: Dict[str, Any] = {}
    if name:
        opts['name'] = name
    if unique is not None:
        opts['unique'] = unique
    if partial:
        opts['partialFilterExpression'] = partial
    await coll.create_indexes([IndexModel(keys, **opts)])
    logger_generic.info(f"[indexes] ensured {coll_name}.{opts.get('name', keys)}")


async def ensure_indexes() -> None:
    # ---------- challenges ----------
    await ensure_index(CHALLENGES, [('post_id', ASCENDING)], name='uniq_challenge_post_if_present',
                       unique=True, partial={'post_id': {'$type': 'string'}})
    await ensure_index(CHALLENGES, [('creator_id', ASCENDING)])
    await ensure_index(CHALLENGES, [('created_at', DESCENDING)])

    # ---------- challenge_attempts ----------
    await ensure_index(ATTEMPTS, [('user_id', ASCENDING), ('challenge_id', ASCENDING)],
                       name='uniq_user_challenge_attempt', unique=True)
    await ensure_index(ATTEMPTS, [('challenge_id', ASCENDING)])

    # ---------- attempt_guesses ----------
    await ensure_index(GUESSES, [('attempt_id', ASCENDING), ('created_at', ASCENDING)])

    # ---------- comment_rewards ----------
    await ensure_index(COMMENT_REWARDS, [('comment_id', ASCENDING)], name='uniq_comment_reward', unique=True)
    await ensure_index(COMMENT_REWARDS, [('challenge_id', ASCENDING)])
    await ensure_index(COMMENT_REWARDS, [('creator_id', ASCENDING)])

    # ---------- user_profiles ----------
    await ensure_index(USER_PROFILES, [('user_id', ASCENDING)], name='uniq_user_profile', unique=True)
    await ensure_index(USER_PROFILES, [('total_points', DESCENDING)])
