"""FastAPI application exposing ingestion and retrieval over HTTP."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List

from fastapi import APIRouter, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from docvault.config import AppConfig
from docvault.errors import DocumentProcessingError, GeminiError, UnsupportedDocumentError
from docvault.ingestion.loaders import DocumentProcessor
from docvault.llm.gemini import GeminiClient
from docvault.models import Document, IngestResult, ScoredChunk
from docvault.rag import RAGService

LOGGER = logging.getLogger(__name__)


class QueryPayload(BaseModel):
    query: str
    document_ids: List[str] = Field(default_factory=list)
    generate: bool = False


def _serialize_document(document: Document) -> dict[str, Any]:
    return {
        "id": document.id,
        "file_name": document.file_name,
        "chunk_count": document.chunk_count,
        "created_at": document.created_at,
    }


def _serialize_result(result: ScoredChunk) -> dict[str, Any]:
    chunk = result.chunk
    return {
        "chunk_id": chunk.chunk_id,
        "document_id": chunk.document_id,
        "file_name": chunk.file_name,
        "chunk_index": chunk.chunk_index,
        "tokens": chunk.tokens,
        "text": chunk.text,
        "score": result.score,
        "semantic_score": result.semantic_score,
        "keyword_score": result.keyword_score,
        "relevance": result.relevance,
        "rank": result.rank,
    }


def _serialize_ingest(result: IngestResult) -> dict[str, Any]:
    return {
        "success": result.success,
        "document_id": result.document_id,
        "file_name": result.file_name,
        "chunks": result.chunks,
        "error": result.error,
    }


def _service(request: Request) -> RAGService:
    return request.app.state.service


router = APIRouter()


@router.post("/documents")
async def upload_document(
    request: Request,
    file: UploadFile = File(...),
    document_id: str | None = Form(None),
) -> dict[str, Any]:
    data = await file.read()
    file_name = file.filename or "upload"
    processor = DocumentProcessor(_service(request))
    try:
        result = await asyncio.to_thread(processor.process_document, file_name, data, document_id)
    except UnsupportedDocumentError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except DocumentProcessingError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    if not result.success:
        raise HTTPException(status_code=422, detail=result.error)
    return _serialize_ingest(result)


@router.get("/documents")
async def list_documents(request: Request) -> dict[str, Any]:
    service = _service(request)
    return {
        "documents": [_serialize_document(doc) for doc in service.get_all_documents()],
        "stats": service.get_stats(),
    }


@router.get("/documents/{document_id}")
async def get_document(request: Request, document_id: str) -> dict[str, Any]:
    document = _service(request).get_document_info(document_id)
    if document is None:
        raise HTTPException(status_code=404, detail=f"Document {document_id} not found")
    return _serialize_document(document)


@router.delete("/documents")
async def clear_documents(request: Request) -> dict[str, Any]:
    """Drop every document and chunk held in memory."""
    service = _service(request)
    service.clear_data()
    return {"status": "ok", "stats": service.get_stats()}


@router.get("/stats")
async def stats(request: Request) -> dict[str, int]:
    return _service(request).get_stats()


@router.post("/query")
async def query_documents(request: Request, payload: QueryPayload) -> dict[str, Any]:
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Empty query")

    service = _service(request)
    unknown = [doc_id for doc_id in payload.document_ids if service.get_document_info(doc_id) is None]
    if unknown:
        raise HTTPException(status_code=404, detail=f"Unknown documents: {', '.join(unknown)}")

    result = await asyncio.to_thread(service.process_query, query, payload.document_ids)
    response: dict[str, Any] = {
        "query": result.query,
        "results": [_serialize_result(item) for item in result.retrieved_chunks],
        "augmented_prompt": result.augmented_prompt,
        "context_documents": result.context_documents,
    }

    if payload.generate:
        try:
            with GeminiClient.from_config(request.app.state.config) as client:
                answer = await asyncio.to_thread(client.answer, result)
        except GeminiError as exc:
            LOGGER.error("Answer generation failed: %s", exc)
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        response["answer"] = {
            "text": answer.text,
            "provider": answer.provider,
            "model": answer.model,
            "tokens": answer.tokens,
        }
    return response


def create_app(config: AppConfig | None = None, service: RAGService | None = None) -> FastAPI:
    """Build the API around a single in-memory service instance."""
    config = config or (service.config if service is not None else AppConfig.from_env())

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
        yield

    application = FastAPI(title="DocVault", version="0.1.0", lifespan=lifespan)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.state.config = config
    application.state.service = service or RAGService(config)
    application.include_router(router)
    return application
