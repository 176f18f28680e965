import os
from typing import Literal, Optional

from pydantic import BaseModel, Field


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_flag(name: str) -> bool:
    return (os.getenv(name, "").lower() in ("1", "true", "yes"))


class EngineSettings(BaseModel):
    """Runtime configuration for the research engine, read from the environment."""

    projectEndpoint: Optional[str] = None
    modelDeployment: str = "gpt-4o"
    assistantName: str = "SEO Content Assistant"
    authMode: Literal["key", "identity"] = "key"
    disableManagedIdentity: bool = False
    pollIntervalMs: int = Field(default=1000, ge=0)
    phaseMaxAttempts: int = Field(default=60, ge=1)
    synthesisMaxAttempts: int = Field(default=120, ge=1)
    chatMaxAttempts: int = Field(default=60, ge=1)
    assistantListLimit: int = Field(default=20, ge=1)

    @property
    def poll_interval_seconds(self) -> float:
        return self.pollIntervalMs / 1000.0

    @classmethod
    def from_env(cls) -> "EngineSettings":
        auth_mode = (os.getenv("AGENTS_AUTH_MODE") or "key").lower()
        return cls(
            projectEndpoint=os.getenv("PROJECT_ENDPOINT") or None,
            modelDeployment=os.getenv("MODEL_DEPLOYMENT_NAME") or "gpt-4o",
            assistantName=os.getenv("RESEARCH_ASSISTANT_NAME") or "SEO Content Assistant",
            authMode=auth_mode,
            disableManagedIdentity=_env_flag("AZURE_IDENTITY_DISABLE_MANAGED_IDENTITY"),
            pollIntervalMs=_env_int("POLL_INTERVAL_MS", 1000),
            phaseMaxAttempts=_env_int("PHASE_MAX_ATTEMPTS", 60),
            synthesisMaxAttempts=_env_int("SYNTHESIS_MAX_ATTEMPTS", 120),
            chatMaxAttempts=_env_int("CHAT_MAX_ATTEMPTS", 60),
            assistantListLimit=_env_int("ASSISTANT_LIST_LIMIT", 20),
        )
