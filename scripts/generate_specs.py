#!/usr/bin/env python3
"""
Generate JSON Schemas, YAML variants, and OpenAPI from Pydantic models.

Outputs under src/specs/:
 - schemas/*.json (and *.yaml)
 - openapi.yaml and openapi.json
"""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Type

try:
    import yaml  # type: ignore
except Exception as exc:  # pragma: no cover
    print("PyYAML is required: pip install pyyaml", file=sys.stderr)
    raise

from pydantic import BaseModel


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
SPECS = SRC / "specs"
SCHEMAS_DIR = SPECS / "schemas"

sys.path.insert(0, str(ROOT))

from src.specs.models import (  # noqa: E402
    SCHEMA_MODELS,
    AssistantChanges,
    CampaignRequest,
    ChatMessageRequest,
    ConnectRequest,
    ErrorResponse,
    OperationResponse,
    ResearchPhaseRequest,
    SelectAssistantRequest,
    UserContentPatch,
)

# (method, path, operationId, summary, request model)
ROUTES = [
    ("post", "/research/connect", "connect", "Connect with an API key and reconcile the research assistant", ConnectRequest),
    ("post", "/research/disconnect", "disconnect", "Reset the session and drop in-flight work", None),
    ("post", "/research/assistants/select", "selectAssistant", "Select the assistant used for runs", SelectAssistantRequest),
    ("get", "/research/assistants/instructions", "fetchInstructions", "Load the selected assistant's instructions for editing", None),
    ("patch", "/research/assistants/{assistantId}", "updateAssistant", "Update assistant model, instructions or tools", AssistantChanges),
    ("post", "/research/phase", "startResearchPhase", "Run a single research phase", ResearchPhaseRequest),
    ("post", "/research/campaign", "runCampaign", "Run the automated phases in order", CampaignRequest),
    ("post", "/research/article", "generateArticle", "Synthesize the article from completed phases", None),
    ("post", "/research/chat/start", "proceedToChat", "Open a chat thread", None),
    ("post", "/research/chat", "sendMessage", "Send one chat turn", ChatMessageRequest),
    ("patch", "/research/user-content", "updateUserContent", "Merge user-supplied content", UserContentPatch),
    ("get", "/research/state", "getState", "Observable session state", None),
]


def write_json_yaml(obj: dict, json_path: Path) -> None:
    json_path.parent.mkdir(parents=True, exist_ok=True)
    with json_path.open("w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, ensure_ascii=False)
    yaml_path = json_path.with_suffix(".yaml")
    with yaml_path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(obj, f, sort_keys=False)


def generate_model_schemas(out_dir: Path = SCHEMAS_DIR) -> None:
    for filename, model in SCHEMA_MODELS.items():
        schema = model.model_json_schema()
        write_json_yaml(schema, out_dir / filename)


def _json_ref(name: str) -> Dict[str, Any]:
    return {"application/json": {"schema": {"$ref": f"#/components/schemas/{name}"}}}


def _operation(operation_id: str, summary: str, request: Optional[Type[BaseModel]]) -> Dict[str, Any]:
    op: Dict[str, Any] = {
        "summary": summary,
        "operationId": operation_id,
        "responses": {
            "200": {"description": "Success", "content": _json_ref("OperationResponse")},
            "400": {"description": "Invalid request or unmet precondition", "content": _json_ref("ErrorResponse")},
            "401": {"description": "Authentication failed", "content": _json_ref("ErrorResponse")},
            "429": {"description": "Rate limited", "content": _json_ref("ErrorResponse")},
            "502": {"description": "Transport failure or remote run failure", "content": _json_ref("ErrorResponse")},
            "504": {"description": "Run timed out", "content": _json_ref("ErrorResponse")},
        },
    }
    if request is not None:
        op["requestBody"] = {"required": True, "content": _json_ref(request.__name__)}
    return op


def build_openapi() -> dict:
    schemas = {
        "OperationResponse": OperationResponse.model_json_schema(),
        "ErrorResponse": ErrorResponse.model_json_schema(),
    }
    paths: Dict[str, Dict[str, Any]] = {}
    for method, path, operation_id, summary, request in ROUTES:
        if request is not None:
            schemas[request.__name__] = request.model_json_schema()
        op = _operation(operation_id, summary, request)
        if "{assistantId}" in path:
            op["parameters"] = [
                {"in": "path", "name": "assistantId", "required": True, "schema": {"type": "string"}}
            ]
        paths.setdefault(path, {})[method] = op

    return {
        "openapi": "3.0.3",
        "info": {
            "title": "Content Research Functions API",
            "version": "0.1.0",
            "description": "HTTP endpoints exposed by the content research Azure Functions app.",
        },
        "servers": [
            {"url": "http://localhost:7071/api", "description": "Local Functions host"}
        ],
        "paths": paths,
        "components": {"schemas": schemas},
    }


def generate_openapi(out_dir: Path = SPECS) -> None:
    spec = build_openapi()
    write_json_yaml(spec, out_dir / "openapi.json")


def main() -> None:
    generate_model_schemas()
    generate_openapi()
    print("Specs generated under src/specs/")


if __name__ == "__main__":
    main()
