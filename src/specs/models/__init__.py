from __future__ import annotations

from typing import Dict, Type

from pydantic import BaseModel

from .http import (
    CampaignRequest,
    ChatMessageRequest,
    ConnectRequest,
    ErrorResponse,
    OperationResponse,
    ResearchPhaseRequest,
    SelectAssistantRequest,
    UserContentPatch,
)
from .domain import (
    ArtifactGeneration,
    AssistantChanges,
    AssistantSummary,
    PhaseResult,
    ResearchState,
    ResearchMessage,
    RunHandle,
    UserContent,
    WorkUnit,
)


# Registry mapping output schema filenames to models for generation
SCHEMA_MODELS: Dict[str, Type[BaseModel]] = {
    "connect.request.schema.json": ConnectRequest,
    "select_assistant.request.schema.json": SelectAssistantRequest,
    "research_phase.request.schema.json": ResearchPhaseRequest,
    "campaign.request.schema.json": CampaignRequest,
    "chat_message.request.schema.json": ChatMessageRequest,
    "user_content.patch.schema.json": UserContentPatch,
    "assistant.changes.schema.json": AssistantChanges,
    "operation.response.schema.json": OperationResponse,
    "error.response.schema.json": ErrorResponse,
    "work_unit.schema.json": WorkUnit,
    "run_handle.schema.json": RunHandle,
    "research_message.schema.json": ResearchMessage,
    "phase_result.schema.json": PhaseResult,
    "artifact_generation.schema.json": ArtifactGeneration,
    "user_content.schema.json": UserContent,
    "assistant.summary.schema.json": AssistantSummary,
    "research_state.schema.json": ResearchState,
}

__all__ = [
    "ConnectRequest",
    "SelectAssistantRequest",
    "ResearchPhaseRequest",
    "CampaignRequest",
    "ChatMessageRequest",
    "UserContentPatch",
    "AssistantChanges",
    "OperationResponse",
    "ErrorResponse",
    "WorkUnit",
    "RunHandle",
    "ResearchMessage",
    "PhaseResult",
    "ArtifactGeneration",
    "UserContent",
    "AssistantSummary",
    "ResearchState",
    "SCHEMA_MODELS",
]
