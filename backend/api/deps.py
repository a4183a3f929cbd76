"""Shared API dependencies."""

import logging

from fastapi import Depends, HTTPException, status

from services.gold_search.pipeline import GoldSearchPipeline
from services.gold_search.session import SearchSession, SessionStore

logger = logging.getLogger(__name__)

# Process-wide singletons; tests swap them through app.dependency_overrides
_pipeline = None
_session_store = SessionStore()


def get_pipeline() -> GoldSearchPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = GoldSearchPipeline()
    return _pipeline


def get_session_store() -> SessionStore:
    return _session_store


def lookup_session(session_id: str, store: SessionStore) -> SearchSession:
    """Return the session or raise 404."""
    session = store.get(session_id)
    if session is None:
        logger.info(f"Unknown search session {session_id}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session de recherche inconnue : {session_id}",
        )
    return session


def get_session_from_query(
    session_id: str, store: SessionStore = Depends(get_session_store)
) -> SearchSession:
    return lookup_session(session_id, store)
