"""
FastAPI router for the writing assistant
========================================

Provides HTTP API endpoints for:
- Semantic analysis: POST /analyze, the remote analyzer consumed by the editor
- Documents: create, read, update, delete and list per owner
- User settings: preferred tone and writing goals
- Applied suggestions: personalization log of accepted suggestions

Ownership is asserted with the X-User-Id header; authenticating that header
is left to the deployment in front of this service.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import openai
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field

from ai_service import AIRequestError, get_ai_service
from config import config
from storage import DocumentStore, StoredDocument
from suggest_edit.models import SuggestionKind, UserSettings
from suggest_edit.semantic import parse_provider_suggestions

logger = logging.getLogger(__name__)

router = APIRouter(tags=["editor"])


# ============================================================================
# REQUEST / RESPONSE MODELS
# ============================================================================

class CamelModel(BaseModel):
    model_config = {"populate_by_name": True}


class AnalyzeRequest(CamelModel):
    """Request model for the semantic analysis endpoint"""

    text: str = Field(default="", description="Text to analyze")
    preferred_tone: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("preferred_tone", "preferredTone"),
        description="Tone the user prefers (e.g. 'professional')",
    )
    writing_goals: Optional[List[str]] = Field(
        default=None,
        validation_alias=AliasChoices("writing_goals", "writingGoals"),
        description="Areas to focus on (e.g. ['clarity', 'grammar'])",
    )


class DocumentCreateRequest(CamelModel):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)


class DocumentUpdateRequest(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1)
    content: Optional[str] = None


class DocumentResponse(BaseModel):
    id: str
    ownerId: str
    title: str
    content: str
    timestamp: datetime

    @classmethod
    def from_document(cls, document: StoredDocument) -> "DocumentResponse":
        return cls(
            id=document.id,
            ownerId=document.owner_id,
            title=document.title,
            content=document.content,
            timestamp=document.timestamp,
        )


class DocumentSummary(BaseModel):
    id: str
    title: str
    timestamp: datetime
    excerpt: str


class SettingsPayload(CamelModel):
    preferred_tone: str = Field(
        default=config.DEFAULT_PREFERRED_TONE,
        validation_alias=AliasChoices("preferred_tone", "preferredTone"),
        serialization_alias="preferredTone",
    )
    writing_goals: List[str] = Field(
        default_factory=lambda: list(config.DEFAULT_WRITING_GOALS),
        min_length=1,
        validation_alias=AliasChoices("writing_goals", "writingGoals"),
        serialization_alias="writingGoals",
    )


class AppliedSuggestionRequest(CamelModel):
    doc_id: str = Field(validation_alias=AliasChoices("doc_id", "docId"), min_length=1)
    suggestion_id: str = Field(validation_alias=AliasChoices("suggestion_id", "suggestionId"), min_length=1)
    kind: SuggestionKind = Field(validation_alias=AliasChoices("kind", "type"))
    original: Optional[str] = None
    suggested: Optional[str] = None


# ============================================================================
# DEPENDENCIES
# ============================================================================

def get_document_store(request: Request) -> DocumentStore:
    store = getattr(request.app.state, "document_store", None)
    if store is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Document store not available")
    return store


def require_user(x_user_id: Optional[str] = Header(default=None, alias="X-User-Id")) -> str:
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return x_user_id


async def _owned_document(store: DocumentStore, doc_id: str, user_id: str) -> StoredDocument:
    document = await store.get_document(doc_id)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    if document.owner_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")
    return document


# ============================================================================
# SEMANTIC ANALYSIS
# ============================================================================

@router.post(
    "/analyze",
    summary="Analyze Text",
    description=(
        "Returns grammar, tone and persuasion suggestions for the submitted text. "
        "Positions are hints; 'original' is quoted verbatim from the input."
    ),
)
async def analyze_endpoint(request: AnalyzeRequest) -> Any:
    """
    Semantic analysis for the editor.

    Texts shorter than the minimum length get no suggestions. A model reply
    without a parseable JSON array counts as no suggestions; provider
    failures return HTTP 500 with an {"error"} body.
    """
    text = request.text or ""
    if len(text) < config.EDITOR.min_analysis_length:
        logger.info("Text too short for analysis, returning empty suggestions")
        return {"suggestions": []}

    start_time = time.time()
    logger.info(
        f"Analyzing text: {len(text)} chars, tone={request.preferred_tone or 'none'}, "
        f"goals={request.writing_goals or []}"
    )

    try:
        raw = await get_ai_service().analyze_text(text, request.preferred_tone, request.writing_goals)
    except (AIRequestError, openai.OpenAIError) as e:
        logger.error(f"Semantic analysis failed: {e}")
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": "Failed to analyze text"})

    suggestions = parse_provider_suggestions(
        raw,
        config.ANALYZER.min_confidence,
        config.ANALYZER.max_suggestions,
    )
    processing_time_ms = (time.time() - start_time) * 1000
    logger.info(f"Returning {len(suggestions)} of {len(raw)} suggestion(s) in {processing_time_ms:.0f}ms")
    return {"suggestions": [suggestion.to_payload() for suggestion in suggestions]}


# ============================================================================
# DOCUMENTS
# ============================================================================

@router.post("/documents", status_code=status.HTTP_201_CREATED)
async def create_document_endpoint(
    payload: DocumentCreateRequest,
    user_id: str = Depends(require_user),
    store: DocumentStore = Depends(get_document_store),
) -> Dict[str, Any]:
    document = await store.create_document(user_id, payload.title, payload.content)
    return {"success": True, "docId": document.id, "document": DocumentResponse.from_document(document).model_dump(mode="json")}


@router.get("/documents")
async def list_documents_endpoint(
    user_id: str = Depends(require_user),
    store: DocumentStore = Depends(get_document_store),
) -> Dict[str, List[DocumentSummary]]:
    documents = await store.list_documents(user_id)
    return {
        "documents": [
            DocumentSummary(id=d.id, title=d.title, timestamp=d.timestamp, excerpt=d.excerpt)
            for d in documents
        ]
    }


@router.get("/documents/{doc_id}", response_model=DocumentResponse)
async def get_document_endpoint(
    doc_id: str,
    user_id: str = Depends(require_user),
    store: DocumentStore = Depends(get_document_store),
) -> DocumentResponse:
    document = await _owned_document(store, doc_id, user_id)
    return DocumentResponse.from_document(document)


@router.put("/documents/{doc_id}")
async def update_document_endpoint(
    doc_id: str,
    payload: DocumentUpdateRequest,
    user_id: str = Depends(require_user),
    store: DocumentStore = Depends(get_document_store),
) -> Dict[str, Any]:
    await _owned_document(store, doc_id, user_id)
    document = await store.update_document(doc_id, title=payload.title, content=payload.content)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    return {"success": True, "docId": document.id, "document": DocumentResponse.from_document(document).model_dump(mode="json")}


@router.delete("/documents/{doc_id}")
async def delete_document_endpoint(
    doc_id: str,
    user_id: str = Depends(require_user),
    store: DocumentStore = Depends(get_document_store),
) -> Dict[str, Any]:
    await _owned_document(store, doc_id, user_id)
    await store.delete_document(doc_id)
    return {"success": True, "message": "Document deleted successfully"}


# ============================================================================
# SETTINGS & PERSONALIZATION
# ============================================================================

@router.get("/settings/{owner_id}")
async def get_settings_endpoint(
    owner_id: str,
    user_id: str = Depends(require_user),
    store: DocumentStore = Depends(get_document_store),
) -> Dict[str, Any]:
    if owner_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")
    settings = await store.get_settings(owner_id)
    return {"preferredTone": settings.preferred_tone, "writingGoals": settings.writing_goals}


@router.put("/settings/{owner_id}")
async def save_settings_endpoint(
    owner_id: str,
    payload: SettingsPayload,
    user_id: str = Depends(require_user),
    store: DocumentStore = Depends(get_document_store),
) -> Dict[str, Any]:
    if owner_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")
    settings = await store.save_settings(
        owner_id,
        UserSettings(preferred_tone=payload.preferred_tone, writing_goals=payload.writing_goals),
    )
    return {"preferredTone": settings.preferred_tone, "writingGoals": settings.writing_goals}


@router.post("/suggestions/applied")
async def log_applied_suggestion_endpoint(
    payload: AppliedSuggestionRequest,
    user_id: str = Depends(require_user),
    store: DocumentStore = Depends(get_document_store),
) -> Dict[str, Any]:
    await _owned_document(store, payload.doc_id, user_id)
    await store.log_applied_suggestion(
        user_id,
        payload.doc_id,
        payload.suggestion_id,
        payload.kind.value,
        payload.original,
        payload.suggested,
    )
    return {"success": True, "message": "Suggestion application logged successfully"}
