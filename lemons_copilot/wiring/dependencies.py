from functools import lru_cache
import logging

from lemons_copilot.application.ports.assistant import AssistantRuntimePort
from lemons_copilot.application.ports.key_value_store import KeyValueStorePort
from lemons_copilot.application.ports.search_index import SearchIndexPort
from lemons_copilot.application.record_gateway import PACKAGE, SERVICE, USER, RecordGateway
from lemons_copilot.application.session_registry import SessionRegistry
from lemons_copilot.application.widget_session import WidgetSession
from lemons_copilot.core.config import settings
from lemons_copilot.infrastructure.bubble.data_api_client import BubbleDataApiClient
from lemons_copilot.infrastructure.bubble.type_slug_resolver import TypeSlugResolver
from lemons_copilot.infrastructure.host.outbox_channel import OutboxHostChannel
from lemons_copilot.infrastructure.llm.mock_runtime import MockAssistantRuntime
from lemons_copilot.infrastructure.llm.openai_runtime import OpenAIAssistantRuntime
from lemons_copilot.infrastructure.llm.prompts import build_instructions
from lemons_copilot.infrastructure.search.algolia_index import AlgoliaSearchIndex
from lemons_copilot.infrastructure.store.json_kv_store import JsonKeyValueStore
from lemons_copilot.infrastructure.store.memory_kv_store import MemoryKeyValueStore
from lemons_copilot.infrastructure.store.transcript_store import TranscriptStore


_session_registry: SessionRegistry | None = None


@lru_cache
def get_storage() -> KeyValueStorePort:
    if settings.ENV.lower() == "test":
        return MemoryKeyValueStore()
    return JsonKeyValueStore(data_dir=settings.STORAGE_DIR)


@lru_cache
def get_record_store() -> BubbleDataApiClient:
    logger = logging.getLogger(__name__)
    logger.info(
        "BUBBLE_API_TOKEN present=%s base=%s",
        bool(settings.BUBBLE_API_TOKEN),
        settings.BUBBLE_API_BASE,
    )
    return BubbleDataApiClient(
        base_url=settings.BUBBLE_API_BASE,
        token=settings.BUBBLE_API_TOKEN,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )


@lru_cache
def get_search_index() -> SearchIndexPort | None:
    if not (settings.ALGOLIA_APP_ID and settings.ALGOLIA_SEARCH_KEY):
        logging.getLogger(__name__).info("Search index not configured; searching the Data API")
        return None
    return AlgoliaSearchIndex(
        app_id=settings.ALGOLIA_APP_ID,
        api_key=settings.ALGOLIA_SEARCH_KEY,
        index_name=settings.ALGOLIA_INDEX,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
        price_attribute=settings.ALGOLIA_PRICE_ATTRIBUTE,
        delivery_attribute=settings.ALGOLIA_DELIVERY_ATTRIBUTE,
    )


@lru_cache
def get_type_slug_resolver() -> TypeSlugResolver:
    return TypeSlugResolver(
        store=get_record_store(),
        cache=get_storage(),
        candidates={
            SERVICE: [settings.BUBBLE_SERVICE_TYPE],
            PACKAGE: settings.PACKAGE_SLUG_CANDIDATES,
            USER: settings.USER_SLUG_CANDIDATES,
        },
        overrides={
            SERVICE: settings.BUBBLE_SERVICE_TYPE,
            PACKAGE: settings.BUBBLE_PACKAGE_TYPE,
            USER: settings.BUBBLE_USER_TYPE,
        },
    )


@lru_cache
def get_record_gateway() -> RecordGateway:
    return RecordGateway(
        store=get_record_store(),
        resolver=get_type_slug_resolver(),
        search_index=get_search_index(),
        packages_field=settings.SERVICE_PACKAGES_FIELD,
        service_field=settings.PACKAGE_SERVICE_FIELD,
    )


@lru_cache
def get_assistant_runtime() -> AssistantRuntimePort:
    if settings.OPENAI_API_KEY and settings.OPENAI_API_KEY.strip():
        return OpenAIAssistantRuntime()
    return MockAssistantRuntime()


def build_session(session_id: str) -> tuple[WidgetSession, OutboxHostChannel]:
    outbox = OutboxHostChannel()
    session = WidgetSession(
        session_id=session_id,
        gateway=get_record_gateway(),
        runtime=get_assistant_runtime(),
        channel=outbox,
        transcript_store=TranscriptStore(get_storage(), session_id),
        instructions=build_instructions(),
        origin=settings.HOST_ORIGIN,
    )
    return session, outbox


def get_session_registry() -> SessionRegistry:
    global _session_registry
    if _session_registry is None:
        _session_registry = SessionRegistry(factory=build_session)
    return _session_registry


@lru_cache
def get_operation_catalog() -> list[dict]:
    session, _ = build_session("operation-catalog")
    return session.operations.schema()


async def close_clients() -> None:
    """Close the cached HTTP clients and drop everything built on them."""
    if get_record_store.cache_info().currsize:
        await get_record_store().aclose()
    if get_search_index.cache_info().currsize:
        index = get_search_index()
        if index is not None:
            await index.aclose()
    for factory in (get_record_gateway, get_type_slug_resolver, get_search_index, get_record_store):
        factory.cache_clear()
    logging.getLogger(__name__).info("HTTP clients closed")
