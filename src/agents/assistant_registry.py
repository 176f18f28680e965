"""
Bootstrap reconciliation for the research assistant.
"""

import logging
from typing import Optional

from src.agents.request_gateway import RequestGateway
from src.specs.agents.research_instructions import agent_config
from src.specs.common.transport_spec import AssistantTransport
from src.specs.models.domain import AssistantSummary
from src.shared.config import EngineSettings

RECONCILE_LIST_LIMIT = 100


async def ensure_research_assistant(
    transport: AssistantTransport,
    gateway: RequestGateway,
    settings: EngineSettings,
    *,
    logger: Optional[logging.Logger] = None,
) -> AssistantSummary:
    """Ensure the research assistant exists with the pinned configuration.

    Resolution order:
      1) Search existing assistants by the configured stable name and update
         the match, pinning instructions, tools and model
      2) Otherwise create a new assistant
    """
    log = logger or logging.getLogger("contentresearch")
    name = settings.assistantName
    desired = agent_config(name, settings.modelDeployment)

    assistants = await gateway.execute(
        lambda: transport.list_assistants(limit=RECONCILE_LIST_LIMIT),
        "listing assistants",
    )
    existing = next((a for a in assistants if a.name == name), None)
    if existing is not None:
        patch = {
            "instructions": desired["instructions"],
            "tools": desired["tools"],
            "model": desired["model"],
        }
        updated = await gateway.execute(
            lambda: transport.update_assistant(existing.id, patch),
            "updating research assistant",
        )
        log.info("Reconciled assistant '%s' (%s)", name, updated.id)
        return updated

    created = await gateway.execute(
        lambda: transport.create_assistant(desired),
        "creating research assistant",
    )
    log.info("Created assistant '%s' with id %s", name, created.id)
    return created


__all__ = ["ensure_research_assistant"]
