"""
Pipeline context.

Everything a pipeline run needs, built once per process and passed explicitly
to the orchestrator and the routes.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional

import httpx

from shared.config import Settings
from shared.database import DatabaseClient
from shared.logging import get_logger
from shared.retry import Sleep
from shared.runtime_state import RuntimeState, create_runtime_state
from shared.storage import StorageClient
from modules.lipsync_processor import SyncLipsyncClient
from modules.scene_planner import StoryboardLLMClient
from modules.video_generator import VeoClient
from api_gateway.services.job_store import InMemoryJobStore, JobStore, SupabaseJobStore

logger = get_logger(__name__)

# Shared client timeout; provider calls pass their own per-request timeouts
HTTP_TIMEOUT_SECONDS = 60.0


@dataclass
class PipelineContext:
    """Process-wide dependencies of the pipeline."""

    settings: Settings
    store: JobStore
    runtime: RuntimeState
    http: httpx.AsyncClient
    llm: StoryboardLLMClient
    video: VeoClient
    lipsync: SyncLipsyncClient
    storage: Optional[StorageClient] = None
    sleep: Sleep = field(default=asyncio.sleep)

    async def close(self) -> None:
        await self.http.aclose()
        await self.runtime.close()


def build_context(settings: Settings, http: Optional[httpx.AsyncClient] = None) -> PipelineContext:
    """
    Build the pipeline context from settings.

    The job store is Supabase-backed unless JOB_STORE_BACKEND=memory. Object
    storage is only available when Supabase is configured.
    """
    http = http or httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)

    if settings.job_store_backend == "memory":
        logger.info("Using in-memory job store")
        store: JobStore = InMemoryJobStore()
    else:
        store = SupabaseJobStore(DatabaseClient(settings))

    storage = None
    if settings.supabase_configured:
        storage = StorageClient(settings)
    else:
        logger.info("Supabase not configured, object storage unavailable")

    return PipelineContext(
        settings=settings,
        store=store,
        runtime=create_runtime_state(settings.redis_url),
        http=http,
        llm=StoryboardLLMClient(settings),
        video=VeoClient(settings, http),
        lipsync=SyncLipsyncClient(settings, http),
        storage=storage,
    )
