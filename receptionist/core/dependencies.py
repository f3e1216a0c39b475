"""FastAPI dependencies and service wiring."""
from functools import lru_cache
from typing import Optional

from fastapi import Depends

from receptionist.core.clock import Clock, SystemClock
from receptionist.core.config import Settings, settings
from receptionist.db.database import AsyncSessionLocal
from receptionist.services.agent.completion import CompletionClient, OpenAICompletionClient
from receptionist.services.agent.turns import TurnProcessor
from receptionist.services.business.handles import BusinessSessionStore
from receptionist.services.call_session.manager import CallSessionManager
from receptionist.services.call_session.reaper import SessionReaper
from receptionist.services.call_session.registry import SessionRegistry
from receptionist.services.language.catalog import LanguageCatalog
from receptionist.services.language.handoff import HandoffController
from receptionist.services.language.policy import LanguagePolicy
from receptionist.services.persistence.conversations import ConversationRecorder
from receptionist.services.trial.guard import TrialQuotaGuard


def create_call_session_manager(
    config: Settings,
    completion_client: CompletionClient,
    clock: Optional[Clock] = None,
    recorder: Optional[ConversationRecorder] = None,
    catalog: Optional[LanguageCatalog] = None,
) -> CallSessionManager:
    """Assemble the call engine from settings. Each call builds fresh registries."""
    clock = clock or SystemClock()
    catalog = catalog or LanguageCatalog(default_language=config.default_language)
    registry = SessionRegistry()
    trial_guard = TrialQuotaGuard(
        enabled=config.enable_trial_restrictions,
        budget_seconds=config.trial_duration_seconds,
        clock=clock,
    )
    turn_processor = TurnProcessor(
        completion_client=completion_client,
        catalog=catalog,
        policy=LanguagePolicy(catalog, threshold=config.language_switch_threshold),
        handoff=HandoffController(catalog, pause_seconds=config.handoff_pause_seconds),
        trial_guard=trial_guard,
        registry=registry,
        completion_timeout=config.completion_timeout_seconds,
        clock=clock,
    )
    return CallSessionManager(
        registry=registry,
        business_sessions=BusinessSessionStore(
            ttl_seconds=config.business_session_ttl_seconds,
            active_window_seconds=config.business_session_active_window_seconds,
            clock=clock,
        ),
        trial_guard=trial_guard,
        turn_processor=turn_processor,
        catalog=catalog,
        recorder=recorder,
        clock=clock,
    )


def create_session_reaper(config: Settings, manager: CallSessionManager) -> SessionReaper:
    return SessionReaper(
        registry=manager.registry,
        business_sessions=manager.business_sessions,
        idle_timeout_seconds=config.call_idle_timeout_seconds,
        interval_seconds=config.reaper_interval_seconds,
        on_evict=manager.record,
        clock=manager.clock,
    )


@lru_cache
def get_completion_client() -> CompletionClient:
    """Get the process-wide completion client."""
    return OpenAICompletionClient(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        max_tokens=settings.completion_max_tokens,
        default_timeout=settings.completion_timeout_seconds,
    )


@lru_cache
def get_call_session_manager() -> CallSessionManager:
    """Get the process-wide call session manager."""
    return create_call_session_manager(
        settings,
        get_completion_client(),
        recorder=ConversationRecorder(AsyncSessionLocal),
    )


def get_business_sessions(
    manager: CallSessionManager = Depends(get_call_session_manager),
) -> BusinessSessionStore:
    """Get the business session handle store."""
    return manager.business_sessions
