"""FastAPI application entry point for the autofill AI bridge."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import EmbeddingShapeError, NotFoundError, ProviderUnavailableError
from shared.clients.ClientManager import ClientManager
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.embed.EmbeddingGateway import EmbeddingGateway
from shared.clients.llm.GenerativeGateway import GenerativeGateway
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.stores.RecordStoreInterface import RecordStoreInterface
from shared.stores.memory.RecordStoreMemory import RecordStoreMemory
from services.context_ingest.DocumentChunker import DocumentChunker
from services.context_ingest.IngestionService import IngestionService
from services.context_store.ContextStoreAdapter import ContextStoreAdapter
from services.form_autofill.AutofillService import AutofillService
from services.form_autofill.FieldExtractor import FieldExtractor
from services.form_autofill.FormService import FormService
from services.form_autofill.RefinementService import RefinementService
from services.form_autofill.SuggestionGenerator import SuggestionGenerator
from services.form_autofill.SuggestionRanker import SuggestionRanker
from server.routers.ContextRouter import router as context_router
from server.routers.DocumentRouter import router as document_router
from server.routers.FormRouter import router as form_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


def wire_services(
    state,
    helper_config: HelperConfig,
    embed_client: EmbedClientInterface,
    llm_client: LLMClientInterface,
    rag_client: RAGClientInterface,
    record_store: RecordStoreInterface,
) -> None:
    """Build every service from the given clients and attach them to state.

    All collaborators are passed explicitly; services never look each other up.
    """
    embedding_gateway = EmbeddingGateway(helper_config=helper_config, embed_client=embed_client)
    generative_gateway = GenerativeGateway(helper_config=helper_config, llm_client=llm_client)
    context_store = ContextStoreAdapter(
        helper_config=helper_config,
        rag_client=rag_client,
        dimension=embedding_gateway.dimension,
    )
    generator = SuggestionGenerator(helper_config=helper_config, generative_gateway=generative_gateway)
    ranker = SuggestionRanker()

    autofill_service = AutofillService(
        helper_config=helper_config,
        embedding_gateway=embedding_gateway,
        context_store=context_store,
        generator=generator,
        ranker=ranker,
    )

    state.embedding_gateway = embedding_gateway
    state.context_store = context_store
    state.autofill_service = autofill_service
    state.form_service = FormService(
        helper_config=helper_config,
        record_store=record_store,
        extractor=FieldExtractor(helper_config=helper_config),
        autofill_service=autofill_service,
        embedding_gateway=embedding_gateway,
        context_store=context_store,
    )
    state.refinement_service = RefinementService(
        helper_config=helper_config,
        record_store=record_store,
        autofill_service=autofill_service,
        ranker=ranker,
    )
    state.ingestion_service = IngestionService(
        helper_config=helper_config,
        record_store=record_store,
        chunker=DocumentChunker(helper_config=helper_config),
        embedding_gateway=embedding_gateway,
        context_store=context_store,
        generative_gateway=generative_gateway,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    client_manager = ClientManager(helper_config=app.state.helper_config)
    embed_client = client_manager.get_embed_client()
    llm_client = client_manager.get_llm_client()
    rag_client = client_manager.get_rag_client()
    clients = [embed_client, llm_client, rag_client]

    logging.info("Booting all clients...")
    for client in clients:
        await client.boot()
    logging.info("All clients booted successfully.")

    wire_services(
        app.state,
        helper_config=app.state.helper_config,
        embed_client=embed_client,
        llm_client=llm_client,
        rag_client=rag_client,
        record_store=RecordStoreMemory(helper_config=app.state.helper_config),
    )

    await check_connections(embed_client, llm_client, rag_client)
    await ensure_collection(embed_client, rag_client, app.state.embedding_gateway.dimension)

    # while the app is running...
    yield

    # when the app shuts down, close all client connections
    logging.info("Shutting down, closing all clients...")
    for client in clients:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="autofill_ai_bridge",
    description=(
        "Context retrieval and autofill suggestion engine. Detects form fields in HTML, "
        "retrieves the user's personal context (manual facts, document excerpts, past "
        "submissions) via vector search and returns ranked value suggestions per field."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(form_router)
app.include_router(document_router)
app.include_router(context_router)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ProviderUnavailableError)
async def provider_unavailable_handler(request: Request, exc: ProviderUnavailableError) -> JSONResponse:
    logging.error("Backend unavailable while serving %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(EmbeddingShapeError)
async def embedding_shape_handler(request: Request, exc: EmbeddingShapeError) -> JSONResponse:
    logging.error("Embedding shape error while serving %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


async def check_connections(
    embed_client: EmbedClientInterface,
    llm_client: LLMClientInterface,
    rag_client: RAGClientInterface,
) -> None:
    """Check connectivity to all configured backends on startup.

    The generative backend is optional at runtime (suggestions degrade to
    field help), so an unreachable LLM only logs a warning.

    Raises:
        Exception: If the embedding or RAG backend is not reachable.
    """
    for client in (embed_client, rag_client):
        result: httpx.Response = await client.do_healthcheck()
        if not result.is_success:
            raise Exception(
                f"{client.get_client_type().upper()} client '{client.__class__.__name__}' is not reachable "
                f"(status {result.status_code}). Cannot store or retrieve context."
            )

    result = await llm_client.do_healthcheck()
    if not result.is_success:
        logging.warning(
            "LLM client '%s' is not reachable (status %d). Suggestions will fall back to field help.",
            llm_client.__class__.__name__,
            result.status_code,
        )


async def ensure_collection(embed_client: EmbedClientInterface, rag_client: RAGClientInterface, dimension: int) -> None:
    """Verify the embedding model's vector size and create the collection if missing.

    Raises:
        EmbeddingShapeError: If the model's vector size differs from EMBED_VECTOR_SIZE.
    """
    vector_size, distance = await embed_client.do_fetch_embedding_vector_size()
    if vector_size != dimension:
        raise EmbeddingShapeError(expected=dimension, actual=vector_size)

    if not await rag_client.do_existence_check():
        logging.info("Creating %s collection (size %d, distance %s)...", rag_client.get_engine_name(), vector_size, distance)
        await rag_client.do_create_collection(vector_size=vector_size, distance=distance)


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting autofill_ai_bridge API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", os.getcwd()),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
