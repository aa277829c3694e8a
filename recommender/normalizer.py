from __future__ import annotations

"""Single parsing boundary between the agent collaborator and the session.

Whatever the agent returns (well-formed reply, partial dict, list, None, JSON text,
primitive) is turned into an AgentResponse here. Downstream code trusts this shape
and only guards per-product fields at render time.
"""

from typing import Any, List, Mapping

from .models import AgentResponse
from .utils import safe_json_loads

FALLBACK_ASSISTANT_TEXT = "I found some recommendations for you."


def normalize_agent_response(raw: Any) -> AgentResponse:
    """Purpose: Convert an untrusted agent payload into a valid AgentResponse.
    Inputs/Outputs: Input is any value; output is an AgentResponse.
    Side Effects / State: None; pure and total.
    Dependencies: Uses extract_result and the coercion helpers below.
    Failure Modes: None; every shape degrades to defaults.
    If Removed: Malformed agent replies crash turn dispatch.
    Testing Notes: Feed None, lists, strings, partial dicts and a full reply.
    """
    # Read only response.result and coerce each field independently.
    result = extract_result(raw)
    return AgentResponse(
        message=_coerce_message(result.get("message")),
        recommendations=_coerce_list(result.get("recommendations")),
        suggestions=_coerce_list(result.get("suggestions")),
    )


def extract_result(raw: Any) -> Mapping[str, Any]:
    """Purpose: Walk the response.result path of a raw agent payload.
    Inputs/Outputs: Input is any value; output is the result mapping or {}.
    Side Effects / State: None.
    Dependencies: Uses safe_json_loads for JSON text payloads.
    Failure Modes: Any missing or non-mapping hop yields {}.
    If Removed: normalize_agent_response cannot locate reply fields.
    Testing Notes: Verify text payloads are parsed and wrong hops return {}.
    """
    if isinstance(raw, (bytes, bytearray)):
        raw = bytes(raw).decode("utf-8", errors="ignore")
    if isinstance(raw, str):
        raw = safe_json_loads(raw)
    node: Any = raw
    for key in ("response", "result"):
        if not isinstance(node, Mapping):
            return {}
        node = node.get(key)
    if not isinstance(node, Mapping):
        return {}
    return node


def display_text(agent_data: AgentResponse) -> str:
    # Chat bubble text for an assistant turn.
    return agent_data.message or FALLBACK_ASSISTANT_TEXT


def _coerce_message(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="ignore")
    return ""


def _coerce_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []
